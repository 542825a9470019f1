"""
Bulk absence generation from a leave.

A leave covering N working days becomes N single-day absences. Totals for
missed and substituted classes are split evenly (float split, no rounding).
The per-day creates are fired concurrently; when some of them fail nothing
is undone automatically. The returned BulkResult records which days were
created and which failed, so the caller can retry the failures or roll back
the created days explicitly.
"""

import asyncio
import logging
import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from dateutil.rrule import DAILY, FR, MO, TH, TU, WE, rrule

from absence_tracker.core.exceptions import BulkGenerationError, NotAuthenticatedError, ValidationError
from absence_tracker.schemas.absence import AbsenceCreate
from absence_tracker.schemas.leave import BulkGenerateRequest, Leave
from absence_tracker.services.validation import substitution_errors, is_number

logger = logging.getLogger(__name__)

# Leaves are typed free-form, in Portuguese or English.
LEAVE_REASON_MAP = {
    "Licença médica": "Sick Leave",
    "Sick Leave": "Sick Leave",
    "Licença Pessoal": "Personal Leave",
    "Personal Leave": "Personal Leave",
    "Desenvolvimento Profissional": "Professional Development",
    "Professional Development": "Professional Development",
    "Conferência": "Conference",
    "Conference": "Conference",
    "Emergência Familiar": "Family Emergency",
    "Family Emergency": "Family Emergency",
    "Demissão": "Demissao",
    "Demissao": "Demissao",
    "Outro": "Other",
    "Other": "Other",
}


def map_leave_reason(reason: str) -> str:
    return LEAVE_REASON_MAP.get(reason, "Other")


def working_days(start: dt.date, end: dt.date, include_weekends: bool = False) -> list[dt.date]:
    """Every day of [start, end], Monday to Friday only unless weekends are included."""
    weekdays = None if include_weekends else (MO, TU, WE, TH, FR)
    return [d.date() for d in rrule(DAILY, dtstart=start, until=end, byweekday=weekdays)]


class GeneratorState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    GENERATING = "generating"


@dataclass
class BulkResult:
    leave_id: str
    records: dict[dt.date, AbsenceCreate]
    created: dict[dt.date, Optional[str]] = field(default_factory=dict)
    failed: dict[dt.date, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def succeeded(self) -> bool:
        return not self.failed and len(self.created) == self.total

    def summary(self) -> dict:
        return {
            "leave_id": self.leave_id,
            "total": self.total,
            "created": sorted(d.isoformat() for d in self.created),
            "failed": {d.isoformat(): error for d, error in sorted(self.failed.items())},
        }


class BulkAbsenceGenerator:
    def __init__(self, store):
        self._store = store
        self.state = GeneratorState.IDLE
        self.outcome: Optional[str] = None  # "success" | "error" once back to idle
        self.results: dict[str, BulkResult] = {}  # last run per leave id

    def build_records(self, leave: Leave, request: BulkGenerateRequest) -> list[AbsenceCreate]:
        teacher = self._store.get_teacher(leave.teacher_id)
        if not teacher:
            raise ValidationError({"teacher_id": "Professor não encontrado."})
        department = self._store.get_department(teacher.department_id)
        if not department:
            raise ValidationError({"department_id": "Departamento do professor não encontrado."})

        days = working_days(leave.start_date, leave.end_date, request.include_weekends)
        if not days:
            raise ValidationError({"include_weekends": "Nenhum dia útil no período do afastamento."})

        classes = request.total_classes / len(days) if is_number(request.total_classes) else None
        if classes is None or classes <= 0:
            raise ValidationError({"total_classes": "Informe um número válido de aulas por dia."})

        substitute_classes = None
        if request.has_substitute:
            if is_number(request.substitute_total_classes):
                substitute_classes = request.substitute_total_classes / len(days)
            errors = substitution_errors(
                substitute_type=request.substitute_type,
                substitute_teacher_id=request.substitute_teacher_id,
                substitute_teacher_name2=request.substitute_teacher_name2,
                substitute_teacher_name3=request.substitute_teacher_name3,
                classes=classes,
                substitute_classes=substitute_classes,
                roster=self._store.substitutes,
                unit=teacher.unit,
            )
            if errors:
                raise ValidationError(errors)

        substitute_type = request.substitute_type if request.has_substitute else None
        return [
            AbsenceCreate(
                teacher_id=leave.teacher_id,
                teacher_name=leave.teacher_name or teacher.name,
                department_id=teacher.department_id or "",
                department_name=department.name,
                discipline_code=department.discipline_code,
                unit=teacher.unit,
                contract_type=teacher.contract_type,
                course=teacher.course,
                teaching_period=teacher.teaching_period,
                date=day,
                reason=map_leave_reason(leave.reason),
                notes=f"Gerado automaticamente do afastamento: {leave.reason}",
                duration="Full Day",
                classes=classes,
                has_substitute=request.has_substitute,
                substitute_type=substitute_type,
                substitute_teacher_id=request.substitute_teacher_id if substitute_type == "Tutor Substituto" else None,
                substitute_teacher_name2=request.substitute_teacher_name2 if substitute_type == "Professor" else None,
                substitute_teacher_name3=request.substitute_teacher_name3 if substitute_type == "Outro" else None,
                substitute_total_classes=substitute_classes,
                leave_id=leave.id,
            )
            for day in days
        ]

    async def generate(self, leave: Leave, request: BulkGenerateRequest, user: Optional[dict]) -> BulkResult:
        if not user:
            raise NotAuthenticatedError("User must be authenticated to generate absences")

        self.state = GeneratorState.VALIDATING
        self.outcome = None
        try:
            records = self.build_records(leave, request)
        except ValidationError:
            self.state = GeneratorState.IDLE
            self.outcome = "error"
            raise

        result = BulkResult(leave_id=leave.id, records={r.date: r for r in records})
        self.results[leave.id] = result
        logger.info("Generating %d absences from leave %s", result.total, leave.id)
        self.state = GeneratorState.GENERATING
        try:
            await self._submit(result, records, user)
        finally:
            self.state = GeneratorState.IDLE
        return self._finish(result)

    async def retry(self, result: BulkResult, user: Optional[dict]) -> BulkResult:
        """Resubmit only the days that failed last time."""
        if not user:
            raise NotAuthenticatedError("User must be authenticated to generate absences")
        records = [result.records[day] for day in sorted(result.failed)]
        if not records:
            return result
        self.state = GeneratorState.GENERATING
        try:
            await self._submit(result, records, user)
        finally:
            self.state = GeneratorState.IDLE
        return self._finish(result)

    async def rollback(self, result: BulkResult) -> None:
        """Delete every day that was created. Days whose delete fails stay in `created`."""
        days = [day for day, absence_id in result.created.items() if absence_id]
        outcomes = await asyncio.gather(
            *(self._store.delete(result.created[day]) for day in days),
            return_exceptions=True,
        )
        for day, outcome in zip(days, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Could not roll back absence of %s: %s", day, outcome)
            else:
                del result.created[day]

    async def _submit(self, result: BulkResult, records: list[AbsenceCreate], user: dict) -> None:
        outcomes = await asyncio.gather(
            *(self._store.create(record, user, reload=False) for record in records),
            return_exceptions=True,
        )
        for record, outcome in zip(records, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Error creating absence of %s: %s", record.date, outcome)
                result.failed[record.date] = str(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.created[record.date] = outcome
                result.failed.pop(record.date, None)
        await self._store.load()

    def _finish(self, result: BulkResult) -> BulkResult:
        if result.failed:
            self.outcome = "error"
            raise BulkGenerationError(result)
        self.outcome = "success"
        return result
