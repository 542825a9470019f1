"""
Pydantic schemas for absence records.
"""

from pydantic import BaseModel, computed_field
from typing import Optional, Literal
import datetime as dt


AbsenceReason = Literal[
    "Sick Leave",
    "Personal Leave",
    "Professional Development",
    "Conference",
    "Family Emergency",
    "Demissao",
    "Other",
]
AbsenceDuration = Literal["Full Day", "Partial Day"]
SubstituteType = Literal["Professor", "Tutor Substituto", "Outro"]


class Absence(BaseModel):
    id: str
    teacher_id: str
    teacher_name: str = ""
    department_id: str = ""
    department_name: str = ""
    discipline_code: Optional[str] = None
    unit: Optional[str] = None
    contract_type: Optional[str] = None
    course: Optional[str] = None
    teaching_period: Optional[str] = None
    regency: Optional[bool] = None
    date: dt.date
    reason: str
    notes: Optional[str] = None
    duration: str = "Full Day"
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    classes: Optional[float] = None
    # substitution sub-record
    substitute_content: Optional[str] = None  # "Sim" / "Não"
    substitute_teacher_id: Optional[str] = None
    substitute_teacher_name: Optional[str] = None  # roster name (Tutor Substituto)
    substitute_teacher_name2: Optional[str] = None  # peer teacher (Professor)
    substitute_teacher_name3: Optional[str] = None  # anyone else (Outro)
    substitute_total_classes: Optional[float] = None
    leave_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @computed_field
    @property
    def substitute_display_name(self) -> str:
        return (
            self.substitute_teacher_name
            or self.substitute_teacher_name2
            or self.substitute_teacher_name3
            or "Nenhum"
        )

    @computed_field
    @property
    def substitute_type(self) -> Optional[str]:
        if self.substitute_teacher_name or self.substitute_teacher_id:
            return "Tutor Substituto"
        if self.substitute_teacher_name2:
            return "Professor"
        if self.substitute_teacher_name3:
            return "Outro"
        return None


class AbsenceCreate(BaseModel):
    teacher_id: str = ""
    teacher_name: str = ""
    department_id: str = ""
    department_name: str = ""
    discipline_code: Optional[str] = None
    unit: Optional[str] = None
    contract_type: Optional[str] = None
    course: Optional[str] = None
    teaching_period: Optional[str] = None
    date: Optional[dt.date] = None
    reason: Optional[AbsenceReason] = None
    notes: Optional[str] = None
    duration: str = "Full Day"
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    classes: Optional[float] = None
    has_substitute: bool = False
    substitute_type: Optional[SubstituteType] = None
    substitute_teacher_id: Optional[str] = None
    substitute_teacher_name2: Optional[str] = None
    substitute_teacher_name3: Optional[str] = None
    substitute_total_classes: Optional[float] = None
    leave_id: Optional[str] = None


class AbsenceUpdate(BaseModel):
    """Partial edit. Only fields explicitly sent are written."""

    teacher_id: Optional[str] = None
    department_id: Optional[str] = None
    department_name: Optional[str] = None
    contract_type: Optional[str] = None
    course: Optional[str] = None
    teaching_period: Optional[str] = None
    date: Optional[dt.date] = None
    reason: Optional[AbsenceReason] = None
    notes: Optional[str] = None
    duration: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    classes: Optional[float] = None
    substitute_content: Optional[str] = None
    substitute_teacher_id: Optional[str] = None
    substitute_teacher_name2: Optional[str] = None
    substitute_teacher_name3: Optional[str] = None
    substitute_total_classes: Optional[float] = None


class AbsenceFilter(BaseModel):
    teacher_id: Optional[str] = None
    department_id: Optional[str] = None
    unit: Optional[str] = None
    contract_type: Optional[str] = None
    course: Optional[str] = None
    teaching_period: Optional[str] = None
    reason: Optional[str] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    def matches(self, absence: Absence) -> bool:
        if self.teacher_id and absence.teacher_id != self.teacher_id:
            return False
        if self.department_id and absence.department_id != self.department_id:
            return False
        if self.unit and absence.unit != self.unit:
            return False
        if self.contract_type and absence.contract_type != self.contract_type:
            return False
        if self.course and absence.course != self.course:
            return False
        if self.teaching_period and absence.teaching_period != self.teaching_period:
            return False
        if self.reason and absence.reason != self.reason:
            return False
        if self.start_date and absence.date < self.start_date:
            return False
        if self.end_date and absence.date > self.end_date:
            return False
        return True

    def apply(self, absences: list[Absence]) -> list[Absence]:
        return [a for a in absences if self.matches(a)]
