from fastapi import Request
from supabase import AsyncClient, acreate_client

from absence_tracker.core.config import settings
from absence_tracker.services.bulk import BulkAbsenceGenerator
from absence_tracker.services.gateway import SupabaseGateway
from absence_tracker.services.repositories import LeaveRepository, SubstituteRepository, TeacherRepository
from absence_tracker.services.store import AbsenceStore

_supabase_client: AsyncClient | None = None


async def get_supabase() -> AsyncClient:
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = await acreate_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY,
        )
    return _supabase_client


# ---------------------------------------------------------------------------
# Per-process services, created in the app lifespan (see main.py)
# ---------------------------------------------------------------------------
def get_gateway(request: Request) -> SupabaseGateway:
    return request.app.state.gateway


def get_store(request: Request) -> AbsenceStore:
    return request.app.state.store


def get_generator(request: Request) -> BulkAbsenceGenerator:
    return request.app.state.generator


def get_substitute_repository(request: Request) -> SubstituteRepository:
    return request.app.state.substitutes


def get_leave_repository(request: Request) -> LeaveRepository:
    return request.app.state.leaves


def get_teacher_repository(request: Request) -> TeacherRepository:
    return request.app.state.teachers
