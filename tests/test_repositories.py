import asyncio
import datetime as dt

import pytest

from absence_tracker.core.exceptions import NotFoundError, ValidationError
from absence_tracker.schemas.directory import SubstituteCreate, TeacherCreate
from absence_tracker.schemas.leave import LeaveCreate, LeaveUpdate
from absence_tracker.services.cache import TTLCache
from absence_tracker.services.repositories import LeaveRepository, SubstituteRepository, TeacherRepository


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_ttl_cache_expires():
    clock = FakeClock()
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("k", [1])

    clock.now = 59
    assert "k" in cache
    clock.now = 60
    assert cache.get("k") is None


def test_ttl_cache_invalidate():
    cache = TTLCache(ttl=60)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert "a" not in cache and cache.get("b") == 2
    cache.invalidate()
    assert "b" not in cache


def test_substitutes_served_from_cache(gateway):
    repo = SubstituteRepository(gateway, TTLCache(ttl=300))

    first = asyncio.run(repo.list("Centro"))
    second = asyncio.run(repo.list("Centro"))

    assert [s.name for s in first] == ["Carlos Lima"]
    assert second == first
    assert gateway.selects.count("substitutes") == 1


def test_change_feed_drops_cached_roster(gateway):
    repo = SubstituteRepository(gateway, TTLCache(ttl=300))

    async def scenario():
        await repo.watch()
        await repo.list()
        gateway.tables["substitutes"].append({"id": "s9", "name": "Elisa Moura", "unit": "Norte", "active": True})
        gateway.emit("substitutes")
        roster = await repo.list()
        await repo.close()
        return roster

    roster = asyncio.run(scenario())
    assert "Elisa Moura" in [s.name for s in roster]
    assert gateway.selects.count("substitutes") == 2


def test_create_substitute_invalidates_cache(gateway):
    repo = SubstituteRepository(gateway, TTLCache(ttl=300))
    asyncio.run(repo.list("Norte"))
    asyncio.run(repo.create(SubstituteCreate(name="Fábio Nunes", unit="Norte")))

    assert [s.name for s in asyncio.run(repo.list("Norte"))] == ["Beatriz Ramos", "Fábio Nunes"]


def test_create_substitute_validates(gateway):
    repo = SubstituteRepository(gateway)
    with pytest.raises(ValidationError):
        asyncio.run(repo.create(SubstituteCreate(name="", unit="Norte")))
    assert len(gateway.tables["substitutes"]) == 3


def test_leave_create_and_lookup_by_date(gateway, user):
    repo = LeaveRepository(gateway)
    leave = asyncio.run(repo.create(
        LeaveCreate(teacher_id="t1", start_date=dt.date(2024, 3, 4), end_date=dt.date(2024, 3, 8), reason="Licença médica"),
        user,
    ))

    assert leave.teacher_name == "Ana Souza"
    assert leave.status == "active"
    assert [l.id for l in asyncio.run(repo.list(date=dt.date(2024, 3, 6)))] == [leave.id]
    assert asyncio.run(repo.list(date=dt.date(2024, 3, 9))) == []


def test_leave_update(gateway, user):
    repo = LeaveRepository(gateway)
    leave = asyncio.run(repo.create(
        LeaveCreate(teacher_id="t2", start_date=dt.date(2024, 3, 4), end_date=dt.date(2024, 3, 8), reason="Outro"),
        user,
    ))
    updated = asyncio.run(repo.update(leave.id, LeaveUpdate(status="completed", document_url="https://x/doc.pdf")))
    assert updated.status == "completed"
    assert updated.document_url == "https://x/doc.pdf"


def test_missing_leave(gateway):
    with pytest.raises(NotFoundError):
        asyncio.run(LeaveRepository(gateway).get("nope"))


def test_register_teacher_creates_profile_first(gateway):
    repo = TeacherRepository(gateway)
    teacher = asyncio.run(repo.create(TeacherCreate(
        name="Clara Dias", email="clara@escola.local", department_id="d1", unit="Centro", regency=False,
    )))

    assert teacher.name == "Clara Dias"
    assert teacher.regency is False
    profile = gateway.tables["profiles"][-1]
    assert profile["role"] == "teacher"
    assert gateway.tables["teachers"][-1]["profile_id"] == profile["id"]
    assert [t.name for t in asyncio.run(repo.list("Centro"))] == ["Ana Souza", "Clara Dias"]
