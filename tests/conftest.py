import asyncio
import itertools

import pytest

from absence_tracker.core.exceptions import RemoteOperationError
from absence_tracker.services.store import AbsenceStore


def _match(row: dict, op: str, column: str, value) -> bool:
    current = row.get(column)
    if op == "eq":
        return current == value
    if op == "lte":
        return current is not None and current <= value
    if op == "gte":
        return current is not None and current >= value
    raise AssertionError(f"unsupported filter {op}")


class FakeGateway:
    """In-memory stand-in for SupabaseGateway. Joins are resolved on read."""

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.page_requests = []
        self.selects = []
        self.fail_tables = set()
        self.fail_insert = None
        self.fail_delete = set()
        self.gates = {}
        self.subscriptions = {}
        self.files = {}
        self._ids = itertools.count(1)

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def _check(self, op, table):
        if table in self.fail_tables:
            raise RemoteOperationError(op, table, "service unavailable")

    def _find(self, table, row_id):
        if row_id is None:
            return None
        return next((r for r in self.rows(table) if r.get("id") == row_id), None)

    def _expand(self, table, row):
        row = dict(row)
        if table == "teachers":
            row["profiles"] = self._find("profiles", row.get("profile_id"))
            row["departments"] = self._find("departments", row.get("department_id"))
        elif table in ("absences", "leaves"):
            teacher = self._find("teachers", row.get("teacher_id"))
            row["teacher"] = self._expand("teachers", teacher) if teacher else None
            if table == "absences":
                row["substitutes"] = self._find("substitutes", row.get("substitute_teacher_id"))
        return row

    # ---- tables ----
    async def fetch_page(self, table, columns, start, end):
        self.page_requests.append((table, start, end))
        self._check("select", table)
        page = [self._expand(table, r) for r in self.rows(table)[start:end + 1]]
        gate = self.gates.pop(table, None)
        if gate is not None:
            await gate.wait()
        return page

    async def select(self, table, columns="*", filters=(), order=None, desc=False):
        self.selects.append(table)
        self._check("select", table)
        rows = [r for r in self.rows(table) if all(_match(r, op, c, v) for op, c, v in filters)]
        if order:
            rows = sorted(rows, key=lambda r: r.get(order) or "", reverse=desc)
        return [self._expand(table, r) for r in rows]

    async def insert(self, table, values):
        self._check("insert", table)
        if self.fail_insert and self.fail_insert(table, values):
            raise RemoteOperationError("insert", table, "insert rejected")
        row = {"id": f"{table}-{next(self._ids)}", **values}
        self.rows(table).append(row)
        return dict(row)

    async def upsert(self, table, values):
        self._check("upsert", table)
        row = self._find(table, values.get("id"))
        if row is None:
            return await self.insert(table, values)
        row.update(values)
        return dict(row)

    async def update(self, table, row_id, values):
        self._check("update", table)
        row = self._find(table, row_id)
        if row is None:
            return []
        row.update(values)
        return [dict(row)]

    async def delete(self, table, row_id):
        self._check("delete", table)
        if row_id in self.fail_delete:
            raise RemoteOperationError("delete", table, "delete rejected")
        self.tables[table] = [r for r in self.rows(table) if r.get("id") != row_id]

    # ---- change feed ----
    async def subscribe(self, table, callback):
        self.subscriptions.setdefault(table, []).append(callback)
        return (table, callback)

    async def unsubscribe(self, channel):
        table, callback = channel
        self.subscriptions[table].remove(callback)

    def emit(self, table, payload=None):
        for callback in list(self.subscriptions.get(table, [])):
            callback(payload or {"eventType": "UPDATE", "table": table})

    # ---- storage ----
    async def upload(self, path, content, content_type="application/octet-stream"):
        self.files[path] = (content, content_type)

    async def public_url(self, path):
        return f"https://storage.test/teachers/{path}"

    async def list_files(self, folder):
        prefix = folder + "/"
        return [
            {"name": path[len(prefix):]}
            for path in self.files
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]


def seed_tables():
    return {
        "departments": [
            {"id": "d1", "name": "Matemática", "disciplinaId": "MAT"},
            {"id": "d2", "name": "História", "disciplinaId": None},
        ],
        "profiles": [
            {"id": "p1", "name": "Ana Souza", "email": "ana@escola.local", "role": "teacher"},
            {"id": "p2", "name": "Bruno Costa", "email": "bruno@escola.local", "role": "teacher"},
            {"id": "p-admin", "name": "Administrador", "email": "admin@escola.local", "role": "admin"},
        ],
        "teachers": [
            {
                "id": "t1", "profile_id": "p1", "department_id": "d1", "unit": "Centro",
                "contract_type": "Efetivo", "course": "Ensino Médio", "teaching_period": "Manhã",
                "regencia": True,
            },
            {
                "id": "t2", "profile_id": "p2", "department_id": "d2", "unit": "Norte",
                "contract_type": "Temporário", "course": "Fundamental", "teaching_period": "Tarde",
                "regencia": False,
            },
        ],
        "substitutes": [
            {"id": "s1", "name": "Carlos Lima", "unit": "Centro", "active": True},
            {"id": "s2", "name": "Beatriz Ramos", "unit": "Norte", "active": True},
            {"id": "s3", "name": "Davi Alves", "unit": "Centro", "active": False},
        ],
        "absences": [
            {
                "id": "a1", "teacher_id": "t1", "department_id": "d1", "name": "Matemática",
                "date": "2024-03-04", "reason": "Sick Leave", "duration": "Full Day", "classes": 4,
                "substituteContent": "Sim", "substitute_teacher_id": "s1", "substitute_total_classes": 2,
                "contract_type": "Efetivo", "course": "Ensino Médio", "teachingPeriod": "Manhã",
            },
            {
                "id": "a2", "teacher_id": "t1", "department_id": "d1", "name": "Matemática",
                "date": "2024-03-05", "reason": "Conference", "duration": "Full Day", "classes": 2,
                "substituteContent": "Sim", "substitute_teacher_name2": "Maria Oliveira",
                "substitute_total_classes": 2, "contract_type": "Efetivo", "course": "Ensino Médio",
                "teachingPeriod": "Manhã",
            },
            {
                "id": "a3", "teacher_id": "t2", "department_id": "d2", "name": "História",
                "date": "2024-02-10", "reason": "Personal Leave", "duration": "Full Day", "classes": 3,
                "substituteContent": "Não", "contract_type": "Temporário", "course": "Fundamental",
                "teachingPeriod": "Tarde",
            },
        ],
        "leaves": [],
    }


@pytest.fixture
def gateway():
    return FakeGateway(seed_tables())


@pytest.fixture
def store(gateway):
    store = AbsenceStore(gateway)
    asyncio.run(store.load())
    return store


@pytest.fixture
def user():
    return {"id": "p-admin", "email": "admin@escola.local", "display_name": "Administrador", "role": "admin"}
