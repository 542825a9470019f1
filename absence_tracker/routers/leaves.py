"""
Leaves router — extended absences and their bulk expansion into daily records.
"""

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from absence_tracker.core.database import get_gateway, get_generator, get_leave_repository
from absence_tracker.core.exceptions import NotFoundError
from absence_tracker.core.security import get_current_user
from absence_tracker.schemas.leave import BulkGenerateRequest, LeaveCreate, LeaveUpdate
from absence_tracker.services.documents import upload_document
from absence_tracker.utils.response import list_response, success_response

router = APIRouter(prefix="/api/leaves", tags=["Leaves"])


@router.get("")
async def list_leaves(
    teacher_id: Optional[str] = None,
    status: Optional[str] = None,
    date: Optional[dt.date] = None,
    leaves=Depends(get_leave_repository),
    user: dict = Depends(get_current_user),
):
    items = await leaves.list(teacher_id=teacher_id, status=status, date=date)
    return list_response([leave.model_dump(mode="json") for leave in items])


@router.post("")
async def create_leave(
    body: LeaveCreate,
    leaves=Depends(get_leave_repository),
    user: dict = Depends(get_current_user),
):
    leave = await leaves.create(body, user)
    return success_response(data=leave.model_dump(mode="json"), message="Afastamento registrado")


@router.patch("/{leave_id}")
async def update_leave(
    leave_id: str,
    body: LeaveUpdate,
    leaves=Depends(get_leave_repository),
    user: dict = Depends(get_current_user),
):
    leave = await leaves.update(leave_id, body)
    return success_response(data=leave.model_dump(mode="json"), message="Afastamento atualizado")


@router.post("/{leave_id}/document")
async def upload_leave_document(
    leave_id: str,
    file: UploadFile = File(...),
    leaves=Depends(get_leave_repository),
    gateway=Depends(get_gateway),
    user: dict = Depends(get_current_user),
):
    leave = await leaves.get(leave_id)
    content = await file.read()
    url = await upload_document(
        gateway,
        leave.teacher_name,
        leave.start_date,
        file.filename or "documento",
        content,
        file.content_type or "application/octet-stream",
    )
    leave = await leaves.update(leave_id, LeaveUpdate(document_url=url))
    return success_response(data=leave.model_dump(mode="json"), message="Documento enviado")


# ===== BULK GENERATION =====

@router.post("/{leave_id}/generate")
async def generate_absences(
    leave_id: str,
    body: BulkGenerateRequest,
    leaves=Depends(get_leave_repository),
    generator=Depends(get_generator),
    user: dict = Depends(get_current_user),
):
    """Expand the leave into one absence per working day."""
    leave = await leaves.get(leave_id)
    result = await generator.generate(leave, body, user)
    return success_response(data=result.summary(), message=f"{result.total} faltas geradas")


def _last_result(generator, leave_id: str):
    result = generator.results.get(leave_id)
    if result is None:
        raise NotFoundError("bulk generation", leave_id)
    return result


@router.post("/{leave_id}/generate/retry")
async def retry_generation(
    leave_id: str,
    generator=Depends(get_generator),
    user: dict = Depends(get_current_user),
):
    """Resubmit the days that failed in the last generation of this leave."""
    result = await generator.retry(_last_result(generator, leave_id), user)
    return success_response(data=result.summary(), message="Dias pendentes gerados")


@router.post("/{leave_id}/generate/rollback")
async def rollback_generation(
    leave_id: str,
    generator=Depends(get_generator),
    user: dict = Depends(get_current_user),
):
    """Delete every absence the last generation of this leave created."""
    result = _last_result(generator, leave_id)
    await generator.rollback(result)
    return success_response(data=result.summary(), message="Geração desfeita")
