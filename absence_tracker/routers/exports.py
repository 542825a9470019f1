"""
Exports router — PDF and XLSX downloads of the absence table.

scope=page exports the rows currently matching the filters; scope=all
refetches every absence from the database and ignores the filters.
"""

import io

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool
from absence_tracker.core.database import get_gateway, get_store
from absence_tracker.core.security import get_current_user
from absence_tracker.schemas.absence import AbsenceFilter
from absence_tracker.services.exports import (
    ExportScope,
    build_pdf,
    build_xlsx,
    collect_documents,
    export_filename,
    fetch_export_absences,
)

router = APIRouter(prefix="/api/exports", tags=["Exports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


async def _export_absences(scope: ExportScope, filters: AbsenceFilter, store, gateway):
    if scope == "all":
        return await fetch_export_absences(gateway, store.departments)
    return filters.apply(store.absences)


def _download(content: bytes, media_type: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/pdf")
async def export_pdf(
    scope: ExportScope = "page",
    filters: AbsenceFilter = Depends(),
    store=Depends(get_store),
    gateway=Depends(get_gateway),
    user: dict = Depends(get_current_user),
):
    absences = await _export_absences(scope, filters, store, gateway)
    content = await run_in_threadpool(build_pdf, absences)
    return _download(content, "application/pdf", export_filename("pdf", scope))


@router.get("/xlsx")
async def export_xlsx(
    scope: ExportScope = "page",
    include_documents: bool = False,
    filters: AbsenceFilter = Depends(),
    store=Depends(get_store),
    gateway=Depends(get_gateway),
    user: dict = Depends(get_current_user),
):
    """Spreadsheet export. include_documents adds an "Atestado" sheet with document links."""
    absences = await _export_absences(scope, filters, store, gateway)
    documents = await collect_documents(gateway, absences) if include_documents else None
    content = await run_in_threadpool(build_xlsx, absences, None, documents)
    return _download(content, XLSX_MEDIA_TYPE, export_filename("xlsx", scope))
