"""
Absences router — list/filter, register, edit, delete and attach documents.
Reads are served from the synchronization store; writes go through it too so
the cache is reloaded after every change.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from absence_tracker.core.database import get_gateway, get_store
from absence_tracker.core.exceptions import NotFoundError
from absence_tracker.core.security import get_current_user
from absence_tracker.schemas.absence import AbsenceCreate, AbsenceFilter, AbsenceUpdate
from absence_tracker.services.documents import list_documents, upload_document
from absence_tracker.utils.response import list_response, success_response

router = APIRouter(prefix="/api/absences", tags=["Absences"])


def _require_absence(store, absence_id: str):
    absence = store.get_absence(absence_id)
    if not absence:
        raise NotFoundError("absence", absence_id)
    return absence


@router.get("")
async def list_absences(
    filters: AbsenceFilter = Depends(),
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    items = filters.apply(store.absences)
    return list_response(
        [a.model_dump(mode="json") for a in items],
        message=store.error or "Success",
    )


@router.post("/reload")
async def reload_absences(
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    """Force a full refetch of the cached data."""
    applied = await store.load()
    return success_response(
        data={"applied": applied, "count": len(store.absences), "error": store.error},
        message="Data reloaded" if applied else (store.error or "Superseded by a newer load"),
    )


@router.get("/{absence_id}")
async def get_absence(
    absence_id: str,
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    return success_response(data=_require_absence(store, absence_id).model_dump(mode="json"))


@router.post("")
async def create_absence(
    body: AbsenceCreate,
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    absence_id = await store.create(body, user)
    absence = store.get_absence(absence_id) if absence_id else None
    return success_response(
        data=absence.model_dump(mode="json") if absence else {"id": absence_id},
        message="Falta registrada",
    )


@router.patch("/{absence_id}")
async def update_absence(
    absence_id: str,
    body: AbsenceUpdate,
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    _require_absence(store, absence_id)
    await store.update(absence_id, body)
    absence = store.get_absence(absence_id)
    return success_response(
        data=absence.model_dump(mode="json") if absence else None,
        message="Falta atualizada",
    )


@router.delete("/{absence_id}")
async def delete_absence(
    absence_id: str,
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    await store.delete(absence_id)
    return success_response(data={"id": absence_id}, message="Falta excluída")


# ===== DOCUMENTS =====

@router.post("/{absence_id}/documents")
async def upload_absence_document(
    absence_id: str,
    file: UploadFile = File(...),
    store=Depends(get_store),
    gateway=Depends(get_gateway),
    user: dict = Depends(get_current_user),
):
    """Attach a medical certificate to the absence's teacher/date folder."""
    absence = _require_absence(store, absence_id)
    content = await file.read()
    url = await upload_document(
        gateway,
        absence.teacher_name,
        absence.date,
        file.filename or "documento",
        content,
        file.content_type or "application/octet-stream",
    )
    return success_response(data={"url": url}, message="Documento enviado")


@router.get("/{absence_id}/documents")
async def get_absence_documents(
    absence_id: str,
    store=Depends(get_store),
    gateway=Depends(get_gateway),
    user: dict = Depends(get_current_user),
):
    absence = _require_absence(store, absence_id)
    return list_response(await list_documents(gateway, absence.teacher_name, absence.date))
