"""
Directory router — teachers, departments and the substitute roster.
Registration is limited to admins and coordinators.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from absence_tracker.core.database import get_store, get_substitute_repository, get_teacher_repository
from absence_tracker.core.security import get_current_user, require_role
from absence_tracker.schemas.directory import SubstituteCreate, TeacherCreate
from absence_tracker.utils.response import list_response, success_response

router = APIRouter(prefix="/api", tags=["Directory"])


# ===== TEACHERS =====

@router.get("/teachers")
async def list_teachers(
    unit: Optional[str] = None,
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    teachers = [t for t in store.teachers if not unit or t.unit == unit]
    return list_response([t.model_dump() for t in sorted(teachers, key=lambda t: t.name)])


@router.post("/teachers")
async def register_teacher(
    body: TeacherCreate,
    store=Depends(get_store),
    teachers=Depends(get_teacher_repository),
    user: dict = Depends(require_role(["admin", "coordinator"])),
):
    teacher = await teachers.create(body)
    await store.load()
    return success_response(data=teacher.model_dump(), message="Professor cadastrado")


# ===== DEPARTMENTS =====

@router.get("/departments")
async def list_departments(
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    return list_response([d.model_dump() for d in store.departments])


# ===== SUBSTITUTES =====

@router.get("/substitutes")
async def list_substitutes(
    unit: Optional[str] = None,
    substitutes=Depends(get_substitute_repository),
    user: dict = Depends(get_current_user),
):
    """Active roster, optionally restricted to one unit."""
    return list_response([s.model_dump() for s in await substitutes.list(unit)])


@router.post("/substitutes")
async def register_substitute(
    body: SubstituteCreate,
    substitutes=Depends(get_substitute_repository),
    store=Depends(get_store),
    user: dict = Depends(require_role(["admin", "coordinator"])),
):
    substitute = await substitutes.create(body)
    await store.load()
    return success_response(data=substitute.model_dump(), message="Tutor substituto cadastrado")
