"""
Auth router — current-user lookup.
Sign-in itself happens on the client against Firebase; this only resolves the profile.
"""

from fastapi import APIRouter, Depends
from absence_tracker.core.config import settings
from absence_tracker.core.security import get_current_user
from absence_tracker.utils.response import success_response

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return success_response(data={**user, "auth_mode": settings.AUTH_MODE})
