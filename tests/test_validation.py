import datetime as dt

import pytest

from absence_tracker.core.exceptions import ValidationError
from absence_tracker.schemas.absence import AbsenceCreate
from absence_tracker.schemas.directory import Substitute, SubstituteCreate
from absence_tracker.schemas.leave import LeaveCreate
from absence_tracker.services.validation import validate_absence, validate_leave, validate_substitute

ROSTER = [
    Substitute(id="s1", name="Carlos Lima", unit="Centro"),
    Substitute(id="s3", name="Davi Alves", unit="Centro", active=False),
]


def _errors(fn, *args):
    with pytest.raises(ValidationError) as exc:
        fn(*args)
    return exc.value.errors


def _absence(**overrides):
    data = {"teacher_id": "t1", "date": dt.date(2024, 3, 4), "reason": "Other", "classes": 2, "unit": "Centro"}
    data.update(overrides)
    return AbsenceCreate(**data)


def test_valid_absence_passes():
    validate_absence(_absence())


def test_required_fields():
    errors = _errors(validate_absence, AbsenceCreate())
    assert errors == {
        "teacher_id": "Professor é obrigatório",
        "date": "Data é obrigatório",
        "reason": "Razão é obrigatório",
        "classes": "A quantidade de aulas faltadas é obrigatória",
    }


def test_classes_must_be_positive():
    assert _errors(validate_absence, _absence(classes=0)) == {"classes": "Informe um número válido de aulas."}


def test_partial_day_times_not_required():
    errors = _errors(validate_absence, _absence(duration="Partial Day", start_time="08:00"))
    assert set(errors) == {"start_time", "end_time"}


def test_substitute_kind_required():
    errors = _errors(validate_absence, _absence(has_substitute=True, substitute_total_classes=1), ROSTER)
    assert errors == {"substitute_type": "Informe quem substituiu."}


def test_inactive_tutor_rejected():
    data = _absence(
        has_substitute=True,
        substitute_type="Tutor Substituto",
        substitute_teacher_id="s3",
        substitute_total_classes=1,
    )
    assert "substitute_teacher_id" in _errors(validate_absence, data, ROSTER)


def test_other_substitute_needs_name():
    data = _absence(has_substitute=True, substitute_type="Outro", substitute_total_classes=1)
    assert _errors(validate_absence, data, ROSTER) == {
        "substitute_teacher_name3": "Informe o nome/cargo do substituto.",
    }


def test_substituted_classes_cannot_exceed_missed():
    data = _absence(
        has_substitute=True,
        substitute_type="Professor",
        substitute_teacher_name2="Maria Oliveira",
        substitute_total_classes=3,
    )
    assert _errors(validate_absence, data, ROSTER) == {
        "substitute_total_classes": "As aulas substituídas não podem exceder as aulas faltadas.",
    }


def test_leave_dates_ordered():
    data = LeaveCreate(teacher_id="t1", start_date=dt.date(2024, 3, 8), end_date=dt.date(2024, 3, 4), reason="Licença")
    assert _errors(validate_leave, data) == {"end_date": "Data de fim deve ser posterior à data de início"}


def test_leave_requires_dates_and_reason():
    assert set(_errors(validate_leave, LeaveCreate(teacher_id="t1"))) == {"start_date", "end_date", "reason"}


def test_substitute_name_letters_only():
    assert _errors(validate_substitute, SubstituteCreate(name="João 2", unit="Centro")) == {
        "name": "O nome deve conter apenas letras",
    }
    validate_substitute(SubstituteCreate(name="João Araújo", unit="Centro"))


def test_substitute_requires_unit():
    assert _errors(validate_substitute, SubstituteCreate(name="João")) == {"unit": "Unidade é obrigatória"}
