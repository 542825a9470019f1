"""
Field-scoped validation rules for absences, leaves and roster entries.

Every function either returns silently or raises ValidationError with a
{field: message} map. Nothing here touches the remote database.
"""

import math
import re
from typing import Iterable, Optional

from absence_tracker.core.exceptions import ValidationError
from absence_tracker.schemas.absence import AbsenceCreate
from absence_tracker.schemas.directory import Substitute, SubstituteCreate
from absence_tracker.schemas.leave import LeaveCreate

NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def substitution_errors(
    *,
    substitute_type: Optional[str],
    substitute_teacher_id: Optional[str],
    substitute_teacher_name2: Optional[str],
    substitute_teacher_name3: Optional[str],
    classes: Optional[float],
    substitute_classes: Optional[float],
    roster: Iterable[Substitute],
    unit: Optional[str],
) -> dict[str, str]:
    """Rules for an absence that declares a substitute."""
    errors: dict[str, str] = {}

    if substitute_type == "Tutor Substituto":
        if not substitute_teacher_id:
            errors["substitute_teacher_id"] = "Selecione o Tutor substituto."
        elif not any(
            s.id == substitute_teacher_id and s.active and s.unit == (unit or "")
            for s in roster
        ):
            errors["substitute_teacher_id"] = "O Tutor substituto deve pertencer à unidade da falta."
    elif substitute_type == "Professor":
        if not (substitute_teacher_name2 or "").strip():
            errors["substitute_teacher_name2"] = "Informe o nome do Professor substituto."
    elif substitute_type == "Outro":
        if not (substitute_teacher_name3 or "").strip():
            errors["substitute_teacher_name3"] = "Informe o nome/cargo do substituto."
    else:
        errors["substitute_type"] = "Informe quem substituiu."

    if not is_number(substitute_classes) or substitute_classes < 0:
        errors["substitute_total_classes"] = "Informe um número válido de aulas substituídas."
    elif is_number(classes) and substitute_classes > classes:
        errors["substitute_total_classes"] = "As aulas substituídas não podem exceder as aulas faltadas."

    return errors


def validate_absence(data: AbsenceCreate, roster: Iterable[Substitute] = ()) -> None:
    errors: dict[str, str] = {}

    if not data.teacher_id:
        errors["teacher_id"] = "Professor é obrigatório"
    if not data.date:
        errors["date"] = "Data é obrigatório"
    if not data.reason:
        errors["reason"] = "Razão é obrigatório"

    if data.classes is None:
        errors["classes"] = "A quantidade de aulas faltadas é obrigatória"
    elif not is_number(data.classes) or data.classes <= 0:
        errors["classes"] = "Informe um número válido de aulas."

    # Start/end times are vestigial: a partial day is described by `classes`
    if data.duration == "Partial Day" and (data.start_time or data.end_time):
        message = 'Não é necessário preencher os horários de início e fim para "Dia Parcial"'
        errors["start_time"] = message
        errors["end_time"] = message

    if data.has_substitute:
        errors.update(substitution_errors(
            substitute_type=data.substitute_type,
            substitute_teacher_id=data.substitute_teacher_id,
            substitute_teacher_name2=data.substitute_teacher_name2,
            substitute_teacher_name3=data.substitute_teacher_name3,
            classes=data.classes,
            substitute_classes=data.substitute_total_classes,
            roster=roster,
            unit=data.unit,
        ))

    if errors:
        raise ValidationError(errors)


def validate_leave(data: LeaveCreate) -> None:
    errors: dict[str, str] = {}
    if not data.start_date:
        errors["start_date"] = "Data de início é obrigatória"
    if not data.end_date:
        errors["end_date"] = "Data de fim é obrigatória"
    if not data.reason.strip():
        errors["reason"] = "Motivo é obrigatório"
    if data.start_date and data.end_date and data.start_date > data.end_date:
        errors["end_date"] = "Data de fim deve ser posterior à data de início"
    if errors:
        raise ValidationError(errors)


def validate_substitute(data: SubstituteCreate) -> None:
    errors: dict[str, str] = {}
    name = data.name.strip()
    if not name:
        errors["name"] = "Nome é obrigatório"
    elif not NAME_PATTERN.match(name):
        errors["name"] = "O nome deve conter apenas letras"
    if not data.unit:
        errors["unit"] = "Unidade é obrigatória"
    if errors:
        raise ValidationError(errors)
