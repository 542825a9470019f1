"""
Absence synchronization store.

Process-wide cache of teachers, departments, substitutes and absences. Every
create/update is followed by a full reload so readers always see their own
writes; delete is the one optimistic path and filters the local copy.

Loads are numbered. A load whose number is not the latest one issued when it
completes is discarded, so overlapping reloads triggered by the change feed
can never put an older snapshot over a newer one.
"""

import asyncio
import logging
from typing import Optional

from absence_tracker.core.exceptions import NotAuthenticatedError, RemoteOperationError, ValidationError
from absence_tracker.schemas.absence import Absence, AbsenceCreate, AbsenceUpdate
from absence_tracker.schemas.directory import Department, Substitute, Teacher
from absence_tracker.services.pagination import fetch_all
from absence_tracker.services.validation import is_number, substitution_errors, validate_absence

logger = logging.getLogger(__name__)

TEACHER_COLUMNS = (
    "id, profile_id, department_id, unit, contract_type, course, teaching_period, "
    "regencia, profiles(name, email), departments(name)"
)

ABSENCE_COLUMNS = (
    "id, teacher_id, department_id, name, date, reason, notes, "
    "substitute_teacher_id, substitute_teacher_name2, substitute_teacher_name3, "
    "substitute_total_classes, substituteContent, duration, start_time, end_time, "
    "leave_id, created_by, created_at, updated_at, teachingPeriod, contract_type, classes, course, "
    "teacher:teachers(id, unit, contract_type, course, teaching_period, regencia, "
    "profiles(name), departments(id, name, disciplinaId)), "
    "substitutes:substitutes(id, name)"
)

# AbsenceUpdate field -> absences column
UPDATE_COLUMNS = {
    "teacher_id": "teacher_id",
    "department_id": "department_id",
    "department_name": "name",
    "contract_type": "contract_type",
    "course": "course",
    "teaching_period": "teachingPeriod",
    "date": "date",
    "reason": "reason",
    "notes": "notes",
    "classes": "classes",
    "substitute_content": "substituteContent",
    "substitute_teacher_id": "substitute_teacher_id",
    "substitute_teacher_name2": "substitute_teacher_name2",
    "substitute_teacher_name3": "substitute_teacher_name3",
    "substitute_total_classes": "substitute_total_classes",
}
NULLABLE_TEXT = {"notes", "substitute_teacher_id", "substitute_teacher_name2", "substitute_teacher_name3"}
SUBSTITUTE_FIELDS = {
    "substitute_teacher_id",
    "substitute_teacher_name2",
    "substitute_teacher_name3",
    "substitute_total_classes",
}


def normalize_duration(value: Optional[str]) -> str:
    return "Full Day" if value == "Full Day" else "Partial Day"


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------
def department_from_row(row: dict) -> Department:
    return Department(id=row["id"], name=row.get("name") or "", discipline_code=row.get("disciplinaId"))


def substitute_from_row(row: dict) -> Substitute:
    return Substitute(
        id=row["id"],
        name=row.get("name") or "",
        unit=row.get("unit") or "",
        active=row.get("active", True),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def teacher_from_row(row: dict) -> Teacher:
    profile = row.get("profiles") or {}
    return Teacher(
        id=row["id"],
        name=profile.get("name") or "",
        email=profile.get("email") or "",
        department_id=row.get("department_id"),
        unit=row.get("unit") or None,
        contract_type=row.get("contract_type") or None,
        course=row.get("course") or None,
        teaching_period=row.get("teaching_period") or None,
        regency=row.get("regencia"),
    )


def absence_from_row(row: dict, departments: Optional[dict[str, Department]] = None) -> Absence:
    teacher = row.get("teacher") or {}
    profile = teacher.get("profiles") or {}
    teacher_department = teacher.get("departments") or {}
    substitute = row.get("substitutes") or {}

    discipline_code = teacher_department.get("disciplinaId")
    if discipline_code is None and departments and row.get("department_id") in departments:
        discipline_code = departments[row["department_id"]].discipline_code

    return Absence(
        id=row["id"],
        teacher_id=row.get("teacher_id") or "",
        teacher_name=profile.get("name") or "",
        department_id=row.get("department_id") or "",
        department_name=row.get("name") or "",
        discipline_code=discipline_code,
        unit=teacher.get("unit") or None,
        contract_type=row.get("contract_type") or teacher.get("contract_type") or None,
        course=row.get("course") or None,
        teaching_period=row.get("teachingPeriod") or None,
        regency=teacher.get("regencia"),
        date=row["date"],
        reason=row.get("reason") or "Other",
        notes=row.get("notes") or None,
        duration=row.get("duration") or "Full Day",
        start_time=row.get("start_time") or None,
        end_time=row.get("end_time") or None,
        classes=row.get("classes"),
        substitute_content=row.get("substituteContent"),
        substitute_teacher_id=row.get("substitute_teacher_id") or None,
        substitute_teacher_name=substitute.get("name") or None,
        substitute_teacher_name2=row.get("substitute_teacher_name2") or None,
        substitute_teacher_name3=row.get("substitute_teacher_name3") or None,
        substitute_total_classes=row.get("substitute_total_classes"),
        leave_id=row.get("leave_id"),
        created_by=row.get("created_by"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def sort_by_date(absences: list[Absence]) -> list[Absence]:
    """Newest first. Pages come back in no stable order."""
    return sorted(absences, key=lambda a: (a.date, a.created_at or ""), reverse=True)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class AbsenceStore:
    def __init__(self, gateway, page_size: Optional[int] = None):
        self._gateway = gateway
        self._page_size = page_size
        self.absences: list[Absence] = []
        self.teachers: list[Teacher] = []
        self.departments: list[Department] = []
        self.substitutes: list[Substitute] = []
        self.loading = False
        self.error: Optional[str] = None
        self._load_seq = 0
        self._channel = None
        self._pending: set[asyncio.Task] = set()

    # ---- reads ----
    async def load(self) -> bool:
        """Refetch everything. Returns False if the result was not applied."""
        self._load_seq += 1
        seq = self._load_seq
        self.loading = True
        self.error = None
        try:
            department_rows = await self._gateway.select("departments", "*")
            substitute_rows = await self._gateway.select("substitutes", "*")
            teacher_rows = await fetch_all(self._gateway, "teachers", TEACHER_COLUMNS, self._page_size)
            absence_rows = await fetch_all(self._gateway, "absences", ABSENCE_COLUMNS, self._page_size)
        except RemoteOperationError:
            logger.exception("Error fetching data")
            if seq == self._load_seq:
                self.error = "Failed to load data. Please try again later."
                self.loading = False
            return False

        if seq != self._load_seq:
            logger.debug("Discarding stale load #%d, latest is #%d", seq, self._load_seq)
            return False

        departments = [department_from_row(r) for r in department_rows]
        by_id = {d.id: d for d in departments}
        self.departments = departments
        self.substitutes = [substitute_from_row(r) for r in substitute_rows]
        self.teachers = [teacher_from_row(r) for r in teacher_rows]
        self.absences = sort_by_date([absence_from_row(r, by_id) for r in absence_rows])
        self.loading = False
        logger.info(
            "Loaded %d absences, %d teachers, %d departments, %d substitutes",
            len(self.absences), len(self.teachers), len(self.departments), len(self.substitutes),
        )
        return True

    def get_absence(self, absence_id: str) -> Optional[Absence]:
        return next((a for a in self.absences if a.id == absence_id), None)

    def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        return next((t for t in self.teachers if t.id == teacher_id), None)

    def get_department(self, department_id: Optional[str]) -> Optional[Department]:
        return next((d for d in self.departments if d.id == department_id), None)

    def substitutes_for_unit(self, unit: Optional[str]) -> list[Substitute]:
        roster = [s for s in self.substitutes if s.active and (not unit or s.unit == unit)]
        return sorted(roster, key=lambda s: s.name)

    # ---- writes ----
    def _with_teacher_defaults(self, data: AbsenceCreate) -> AbsenceCreate:
        """Fill the denormalized teacher/department snapshot from the cache."""
        teacher = self.get_teacher(data.teacher_id)
        if not teacher:
            return data
        department = self.get_department(data.department_id or teacher.department_id)
        return data.model_copy(update={
            "teacher_name": data.teacher_name or teacher.name,
            "department_id": data.department_id or teacher.department_id or "",
            "department_name": data.department_name or (department.name if department else ""),
            "discipline_code": data.discipline_code or (department.discipline_code if department else None),
            "unit": data.unit or teacher.unit,
            "contract_type": data.contract_type or teacher.contract_type,
            "course": data.course or teacher.course,
            "teaching_period": data.teaching_period or teacher.teaching_period,
        })

    async def create(self, data: AbsenceCreate, user: Optional[dict], reload: bool = True) -> Optional[str]:
        """Insert one absence and return its id. Reloads unless `reload` is False."""
        if not user:
            raise NotAuthenticatedError("User must be authenticated to add an absence")

        data = self._with_teacher_defaults(data)
        validate_absence(data, self.substitutes)

        duration = normalize_duration(data.duration)
        substitute_type = data.substitute_type if data.has_substitute else None
        values = {
            "teacher_id": data.teacher_id,
            "date": data.date.isoformat(),
            "reason": data.reason,
            "notes": data.notes or None,
            "substitute_teacher_id": data.substitute_teacher_id if substitute_type == "Tutor Substituto" else None,
            "substitute_teacher_name2": data.substitute_teacher_name2 if substitute_type == "Professor" else None,
            "substitute_teacher_name3": data.substitute_teacher_name3 if substitute_type == "Outro" else None,
            "substitute_total_classes": data.substitute_total_classes if substitute_type else None,
            "substituteContent": "Sim" if substitute_type else "Não",
            "leave_id": data.leave_id or None,
            "duration": duration,
            "start_time": data.start_time if duration == "Partial Day" else None,
            "end_time": data.end_time if duration == "Partial Day" else None,
            "created_by": user["id"],
            "contract_type": data.contract_type,
            "department_id": data.department_id or None,
            "name": data.department_name,
            "classes": data.classes,
            "course": data.course,
            "teachingPeriod": data.teaching_period,
        }

        try:
            row = await self._gateway.insert("absences", values)
        except RemoteOperationError:
            logger.error("Error adding absence for teacher %s on %s", data.teacher_id, data.date)
            raise

        if reload:
            await self.load()
        return row.get("id")

    async def update(self, absence_id: str, fields: AbsenceUpdate) -> None:
        present = fields.model_dump(exclude_unset=True)
        current = self.get_absence(absence_id)

        values = {}
        for field, column in UPDATE_COLUMNS.items():
            if field not in present:
                continue
            value = present[field]
            if field == "date" and value is not None:
                value = value.isoformat()
            elif field in NULLABLE_TEXT:
                value = value or None
            values[column] = value

        if present.get("duration"):
            values["duration"] = normalize_duration(present["duration"])
        effective_duration = values.get("duration") or (current.duration if current else None)
        for field in ("start_time", "end_time"):
            if field in present:
                values[field] = present[field] if effective_duration == "Partial Day" else None

        classes = present["classes"] if "classes" in present else (current.classes if current else None)
        substituted = (
            present["substitute_total_classes"] if "substitute_total_classes" in present
            else (current.substitute_total_classes if current else None)
        )
        if "classes" in present and (classes is None or classes <= 0):
            raise ValidationError({"classes": "Informe um número válido de aulas."})
        if SUBSTITUTE_FIELDS & present.keys():
            errors = self._substitution_errors(current, present, classes, substituted)
            if errors:
                raise ValidationError(errors)
        elif classes is not None and substituted is not None and substituted > classes:
            raise ValidationError({
                "substitute_total_classes": "As aulas substituídas não podem exceder as aulas faltadas.",
            })

        if not values:
            return

        try:
            await self._gateway.update("absences", absence_id, values)
        except RemoteOperationError:
            logger.error("Error updating absence %s", absence_id)
            raise
        await self.load()

    def _substitution_errors(
        self,
        current: Optional[Absence],
        present: dict,
        classes: Optional[float],
        substituted: Optional[float],
    ) -> dict[str, str]:
        """Substitution rules over the record as it will be after the edit."""

        def effective(field):
            if field in present:
                return present[field] or None
            return getattr(current, field) if current else None

        tutor_id = effective("substitute_teacher_id")
        peer_name = effective("substitute_teacher_name2")
        other_name = effective("substitute_teacher_name3")
        if tutor_id:
            substitute_type = "Tutor Substituto"
        elif peer_name:
            substitute_type = "Professor"
        elif other_name:
            substitute_type = "Outro"
        else:
            # substitute removed: only the count itself is checked
            if substituted is not None and (not is_number(substituted) or substituted < 0):
                return {"substitute_total_classes": "Informe um número válido de aulas substituídas."}
            return {}

        return substitution_errors(
            substitute_type=substitute_type,
            substitute_teacher_id=tutor_id,
            substitute_teacher_name2=peer_name,
            substitute_teacher_name3=other_name,
            classes=classes,
            substitute_classes=substituted,
            roster=self.substitutes,
            unit=current.unit if current else None,
        )

    async def delete(self, absence_id: str) -> None:
        try:
            await self._gateway.delete("absences", absence_id)
        except RemoteOperationError:
            logger.error("Error deleting absence %s", absence_id)
            raise
        # any load already in flight read the row before it was deleted
        self._load_seq += 1
        self.loading = False
        self.absences = [a for a in self.absences if a.id != absence_id]

    # ---- change feed ----
    async def subscribe(self) -> None:
        if self._channel is None:
            self._channel = await self._gateway.subscribe("absences", self._on_change)

    def _on_change(self, payload: dict) -> None:
        logger.debug("Change on absences: %s", payload.get("eventType") if isinstance(payload, dict) else payload)
        task = asyncio.ensure_future(self.load())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        if self._channel is not None:
            await self._gateway.unsubscribe(self._channel)
            self._channel = None
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
