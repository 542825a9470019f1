"""
Analytics router — dashboard counters and filtered breakdowns.
"""

from fastapi import APIRouter, Depends
from absence_tracker.core.database import get_store
from absence_tracker.core.security import get_current_user
from absence_tracker.schemas.absence import AbsenceFilter
from absence_tracker.services.analytics import dashboard, summarize
from absence_tracker.utils.response import success_response

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


@router.get("/summary")
async def get_summary(
    filters: AbsenceFilter = Depends(),
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    return success_response(data=summarize(store.absences, filters, store.teachers, store.departments))


@router.get("/dashboard")
async def get_dashboard(
    store=Depends(get_store),
    user: dict = Depends(get_current_user),
):
    return success_response(data=dashboard(store.absences))
