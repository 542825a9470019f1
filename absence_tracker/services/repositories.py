"""
Per-entity repositories over the remote gateway.

Each repository exposes list/get/invalidate. Reference data that changes
rarely (the substitute roster) is served from an injected cache policy and
dropped whenever the change feed reports a write to its table.
"""

import logging
import datetime as dt
from typing import Optional

from absence_tracker.core.exceptions import NotFoundError, RemoteOperationError
from absence_tracker.schemas.directory import Substitute, SubstituteCreate, Teacher, TeacherCreate
from absence_tracker.schemas.leave import Leave, LeaveCreate, LeaveUpdate
from absence_tracker.services.cache import TTLCache
from absence_tracker.services.store import substitute_from_row, teacher_from_row
from absence_tracker.services.validation import validate_leave, validate_substitute

logger = logging.getLogger(__name__)


class Repository:
    table: str = ""
    columns: str = "*"

    def __init__(self, gateway, cache: Optional[TTLCache] = None):
        self._gateway = gateway
        self._cache = cache
        self._channel = None

    def from_row(self, row: dict):
        raise NotImplementedError

    async def list(self, **filters) -> list:
        raise NotImplementedError

    async def get(self, row_id: str):
        rows = await self._gateway.select(self.table, self.columns, [("eq", "id", row_id)])
        if not rows:
            raise NotFoundError(self.table, row_id)
        return self.from_row(rows[0])

    def invalidate(self) -> None:
        if self._cache is not None:
            self._cache.invalidate()

    async def watch(self) -> None:
        """Drop cached reads whenever the table changes remotely."""
        if self._channel is None:
            self._channel = await self._gateway.subscribe(self.table, lambda payload: self.invalidate())

    async def close(self) -> None:
        if self._channel is not None:
            await self._gateway.unsubscribe(self._channel)
            self._channel = None


class SubstituteRepository(Repository):
    table = "substitutes"

    def from_row(self, row: dict) -> Substitute:
        return substitute_from_row(row)

    async def list(self, unit: Optional[str] = None) -> list[Substitute]:
        key = f"substitutes-{unit or 'all'}"
        if self._cache is not None and key in self._cache:
            return self._cache.get(key)

        filters = [("eq", "active", True)]
        if unit:
            filters.append(("eq", "unit", unit))
        try:
            rows = await self._gateway.select(self.table, "*", filters, order="name")
        except RemoteOperationError:
            logger.exception("Error fetching substitutes")
            raise

        substitutes = [self.from_row(r) for r in rows]
        if self._cache is not None:
            self._cache.set(key, substitutes)
        return substitutes

    async def create(self, data: SubstituteCreate) -> Substitute:
        validate_substitute(data)
        row = await self._gateway.insert(self.table, {"name": data.name.strip(), "unit": data.unit, "active": True})
        self.invalidate()
        return self.from_row(row)


class LeaveRepository(Repository):
    table = "leaves"
    columns = "*, teacher:teachers(id, profiles(name))"

    def from_row(self, row: dict) -> Leave:
        teacher = row.get("teacher") or {}
        return Leave(
            id=row["id"],
            teacher_id=row["teacher_id"],
            teacher_name=(teacher.get("profiles") or {}).get("name") or "",
            start_date=row["start_date"],
            end_date=row["end_date"],
            reason=row.get("reason") or "",
            document_url=row.get("document_url"),
            status=row.get("status") or "active",
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    async def list(
        self,
        teacher_id: Optional[str] = None,
        status: Optional[str] = None,
        date: Optional[dt.date] = None,
    ) -> list[Leave]:
        filters = []
        if teacher_id:
            filters.append(("eq", "teacher_id", teacher_id))
        if status:
            filters.append(("eq", "status", status))
        if date:
            # leaves covering that day
            filters.append(("lte", "start_date", date.isoformat()))
            filters.append(("gte", "end_date", date.isoformat()))
        rows = await self._gateway.select(self.table, self.columns, filters, order="start_date", desc=True)
        return [self.from_row(r) for r in rows]

    async def create(self, data: LeaveCreate, user: dict) -> Leave:
        validate_leave(data)
        row = await self._gateway.insert(self.table, {
            "teacher_id": data.teacher_id,
            "start_date": data.start_date.isoformat(),
            "end_date": data.end_date.isoformat(),
            "reason": data.reason,
            "document_url": data.document_url,
            "status": data.status,
            "created_by": user["id"],
        })
        return await self.get(row["id"])

    async def update(self, leave_id: str, updates: LeaveUpdate) -> Leave:
        present = updates.model_dump(exclude_unset=True)
        values = {}
        for field in ("start_date", "end_date"):
            if present.get(field):
                values[field] = present[field].isoformat()
        if present.get("reason"):
            values["reason"] = present["reason"]
        if "document_url" in present:
            values["document_url"] = present["document_url"]
        if present.get("status"):
            values["status"] = present["status"]

        if values:
            await self._gateway.update(self.table, leave_id, values)
        return await self.get(leave_id)


class TeacherRepository(Repository):
    table = "teachers"
    columns = (
        "id, profile_id, department_id, unit, contract_type, course, teaching_period, "
        "regencia, profiles(name, email)"
    )

    def from_row(self, row: dict) -> Teacher:
        return teacher_from_row(row)

    async def list(self, unit: Optional[str] = None) -> list[Teacher]:
        filters = [("eq", "unit", unit)] if unit else []
        rows = await self._gateway.select(self.table, self.columns, filters)
        return [self.from_row(r) for r in rows]

    async def create(self, data: TeacherCreate) -> Teacher:
        """Register a teacher: a profile row first, then the teacher row pointing at it."""
        profile = await self._gateway.insert("profiles", {
            "email": data.email,
            "name": data.name,
            "role": "teacher",
        })
        row = await self._gateway.insert(self.table, {
            "profile_id": profile["id"],
            "department_id": data.department_id,
            "unit": data.unit,
            "contract_type": data.contract_type,
            "course": data.course,
            "teaching_period": data.teaching_period,
            "regencia": data.regency,
        })
        logger.info("Registered teacher %s (%s)", data.name, row.get("id"))
        return await self.get(row["id"])
