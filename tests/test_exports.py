import asyncio
import datetime as dt
import io

from openpyxl import load_workbook

from absence_tracker.schemas.absence import Absence
from absence_tracker.services import exports
from absence_tracker.services.exports import (
    HEADER,
    build_pdf,
    build_xlsx,
    chunked,
    collect_documents,
    export_filename,
    export_row,
    fetch_export_absences,
    format_number,
)


def _absence(**overrides):
    data = {
        "id": "x1",
        "teacher_id": "t1",
        "teacher_name": "Ana Souza",
        "department_name": "Matemática",
        "discipline_code": "MAT",
        "unit": "Centro",
        "contract_type": "Efetivo",
        "course": "Ensino Médio",
        "teaching_period": "Manhã",
        "regency": True,
        "date": dt.date(2024, 3, 4),
        "reason": "Sick Leave",
        "classes": 4,
    }
    data.update(overrides)
    return Absence(**data)


def test_row_uses_peer_substitute_name():
    row = export_row(_absence(substitute_teacher_name2="Maria Oliveira", substitute_total_classes=2))
    assert row[HEADER.index("Substituto")] == "Maria Oliveira"
    assert row[HEADER.index("Aulas dadas pelo substituto")] == "2"


def test_row_without_substitute_says_nenhum():
    row = export_row(_absence())
    assert row[HEADER.index("Substituto")] == "Nenhum"
    assert row[HEADER.index("Aulas dadas pelo substituto")] == "Nenhum"


def test_row_formats_department_and_classes():
    row = export_row(_absence(classes=10 / 3, regency=None))
    assert row[HEADER.index("Departamento")] == "Matemática (MAT)"
    assert row[HEADER.index("Duração")] == "3.33 aulas"
    assert row[HEADER.index("Data")] == "Mar 04, 2024"
    assert row[HEADER.index("Regência")] == "-"


def test_format_number_strips_trailing_zeros():
    assert format_number(2.0) == "2"
    assert format_number(2.5) == "2.5"
    assert format_number(None) == "0"


def test_filenames():
    assert export_filename("pdf", "page") == "faltas_professores.pdf"
    assert export_filename("pdf", "all") == "faltas_professores_TODOS.pdf"
    assert export_filename("xlsx", "all") == "faltas_professores_TODOS.xlsx"


def test_chunked():
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]


def test_xlsx_rows_match_projection():
    absences = [_absence(id=f"x{i}", date=dt.date(2024, 3, i + 1)) for i in range(5)]
    content = build_xlsx(absences, chunk_size=2)

    workbook = load_workbook(io.BytesIO(content))
    sheet = workbook["Absences"]
    rows = [list(r) for r in sheet.iter_rows(values_only=True)]
    assert rows[0] == HEADER
    assert len(rows) == 6
    assert [str(v) if v is not None else "" for v in rows[1]] == export_row(absences[0])
    assert "Atestado" not in workbook.sheetnames


def test_xlsx_document_sheet():
    content = build_xlsx([_absence()], documents=[["Ana Souza", "2024-03-04", "https://storage.test/a.pdf"]])
    workbook = load_workbook(io.BytesIO(content))
    rows = list(workbook["Atestado"].iter_rows(values_only=True))
    assert rows[1] == ("Ana Souza", "2024-03-04", "https://storage.test/a.pdf")


def test_pdf_is_built_in_chunks():
    absences = [_absence(id=f"x{i}", notes="<b>sem</b> & nota") for i in range(5)]
    content = build_pdf(absences, chunk_size=2, today=dt.date(2024, 3, 31))
    assert content.startswith(b"%PDF")


def test_pdf_with_no_rows():
    assert build_pdf([]).startswith(b"%PDF")


def test_fetch_export_absences_reads_every_page(gateway, store):
    absences = asyncio.run(fetch_export_absences(gateway, store.departments))
    assert [a.id for a in absences] == ["a2", "a1", "a3"]
    assert absences[0].substitute_display_name == "Maria Oliveira"


def test_collect_documents(gateway, store):
    gateway.files["Ana Souza/2024-03-04/1_atestado.pdf"] = (b"%PDF", "application/pdf")
    rows = asyncio.run(collect_documents(gateway, store.absences))
    assert rows == [[
        "Ana Souza",
        "2024-03-04",
        "https://storage.test/teachers/Ana Souza/2024-03-04/1_atestado.pdf",
    ]]


def test_pdf_gets_one_table_per_chunk(monkeypatch):
    tables = []
    original = exports.Table

    def counting_table(data, **kwargs):
        tables.append(len(data))
        return original(data, **kwargs)

    monkeypatch.setattr(exports, "Table", counting_table)
    build_pdf([_absence(id=f"x{i}") for i in range(5)], chunk_size=2)

    # header row + chunk rows
    assert tables == [3, 3, 2]
