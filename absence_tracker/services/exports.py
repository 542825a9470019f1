"""
Export formatter — PDF (reportlab) and XLSX (openpyxl) reports of absences.

Both formats share one row projection. Rows are processed in fixed-size
chunks: the PDF gets one table per chunk, so reportlab lays out and splits
many small tables instead of one huge one, and the XLSX streams rows through
a write-only workbook. The PDF story itself is still held whole until
`doc.build`, so its memory grows with the number of rows.
The "all" scope refetches the table directly instead of reusing the store's
cached copy.
"""

import io
import logging
import datetime as dt
from typing import Iterable, Iterator, Literal, Optional
from xml.sax.saxutils import escape

from openpyxl import Workbook
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from absence_tracker.core.config import settings
from absence_tracker.schemas.absence import Absence
from absence_tracker.schemas.directory import Department
from absence_tracker.services.documents import list_documents
from absence_tracker.services.pagination import fetch_all
from absence_tracker.services.store import ABSENCE_COLUMNS, absence_from_row, sort_by_date

logger = logging.getLogger(__name__)

ExportScope = Literal["page", "all"]

HEADER = [
    "Unidade",
    "Data",
    "Professor",
    "Categoria",
    "Curso",
    "Departamento",
    "Período",
    "Razão",
    "Duração",
    "Substituto",
    "Aulas dadas pelo substituto",
    "Regência",
    "Notas",
]
DOCUMENT_HEADER = ["Professor", "Data", "Atestado"]


def format_number(value: Optional[float]) -> str:
    text = f"{float(value or 0):.2f}"
    return text.rstrip("0").rstrip(".")


def export_row(absence: Absence) -> list[str]:
    department = absence.department_name
    if absence.discipline_code:
        department = f"{department} ({absence.discipline_code})"
    if absence.regency is None:
        regency = "-"
    else:
        regency = "Sim" if absence.regency else "Não"

    return [
        absence.unit or "-",
        absence.date.strftime("%b %d, %Y"),
        absence.teacher_name,
        absence.contract_type or "-",
        absence.course or "-",
        department,
        absence.teaching_period or "-",
        absence.reason,
        f"{format_number(absence.classes)} aulas",
        absence.substitute_display_name,
        format_number(absence.substitute_total_classes) if absence.substitute_total_classes else "Nenhum",
        regency,
        absence.notes or "",
    ]


def chunked(items: list, size: int) -> Iterator[list]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def export_filename(extension: str, scope: ExportScope) -> str:
    suffix = "_TODOS" if scope == "all" else ""
    return f"faltas_professores{suffix}.{extension}"


async def fetch_export_absences(gateway, departments: Iterable[Department] = ()) -> list[Absence]:
    """Fresh copy of every absence, bypassing the synchronization store."""
    rows = await fetch_all(gateway, "absences", ABSENCE_COLUMNS)
    by_id = {d.id: d for d in departments}
    return sort_by_date([absence_from_row(r, by_id) for r in rows])


async def collect_documents(gateway, absences: list[Absence]) -> list[list[str]]:
    """One row per supporting document found for each teacher/date pair."""
    rows = []
    seen = set()
    for absence in absences:
        key = (absence.teacher_name, absence.date)
        if key in seen:
            continue
        seen.add(key)
        for document in await list_documents(gateway, absence.teacher_name, absence.date):
            rows.append([absence.teacher_name, absence.date.isoformat(), document["url"]])
    return rows


def build_pdf(absences: list[Absence], chunk_size: Optional[int] = None, today: Optional[dt.date] = None) -> bytes:
    size = chunk_size or settings.EXPORT_CHUNK_SIZE
    today = today or dt.date.today()

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), leftMargin=20, rightMargin=20)
    styles = getSampleStyleSheet()
    cell_style = styles["BodyText"].clone("Cell", fontSize=7, leading=8)
    elements = [
        Paragraph("Relatório de Faltas dos Professores", styles["Title"]),
        Paragraph(f"Gerado em {today.strftime('%d/%m/%Y')}", styles["Normal"]),
        Spacer(1, 12),
    ]

    table_style = TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#428BCA")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 7),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ])

    chunks = list(chunked(absences, size)) or [[]]
    for chunk in chunks:
        table_data = [HEADER] + [
            [Paragraph(escape(cell), cell_style) for cell in export_row(a)] for a in chunk
        ]
        table = Table(table_data, repeatRows=1)
        table.setStyle(table_style)
        elements.append(table)

    doc.build(elements)
    logger.info("Built PDF export with %d rows in %d chunk(s)", len(absences), len(chunks))
    return buffer.getvalue()


def build_xlsx(
    absences: list[Absence],
    chunk_size: Optional[int] = None,
    documents: Optional[list[list[str]]] = None,
) -> bytes:
    size = chunk_size or settings.EXPORT_CHUNK_SIZE

    workbook = Workbook(write_only=True)
    sheet = workbook.create_sheet("Absences")
    sheet.append(HEADER)
    chunks = 0
    for chunk in chunked(absences, size):
        for absence in chunk:
            sheet.append(export_row(absence))
        chunks += 1

    if documents is not None:
        document_sheet = workbook.create_sheet("Atestado")
        document_sheet.append(DOCUMENT_HEADER)
        for row in documents:
            document_sheet.append(row)

    buffer = io.BytesIO()
    workbook.save(buffer)
    logger.info("Built XLSX export with %d rows in %d chunk(s)", len(absences), chunks)
    return buffer.getvalue()
