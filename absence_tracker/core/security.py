"""
Security module — Firebase JWT verification + Mock auth + Role guard.

Auth Flow:
1. User logs in via Firebase → gets JWT
2. Frontend sends JWT to FastAPI
3. FastAPI verifies JWT using Firebase Admin SDK
4. Backend fetches the user profile from Supabase (profiles.id = Firebase UID)
5. First login creates the profile from the token's name/email
6. Backend injects: id, email, display_name, role

The resulting user dict is what `created_by` is filled from.
"""

import os
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from absence_tracker.core.config import settings
from absence_tracker.core.database import get_gateway

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer()

# ---------------------------------------------------------------------------
# Firebase initialization (lazy)
# ---------------------------------------------------------------------------
_firebase_app = None


def _init_firebase():
    global _firebase_app
    if _firebase_app is not None:
        return
    import firebase_admin
    from firebase_admin import credentials as fb_credentials

    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if os.path.exists(cred_path):
        cred = fb_credentials.Certificate(cred_path)
        _firebase_app = firebase_admin.initialize_app(cred)
    else:
        # Try default credentials
        _firebase_app = firebase_admin.initialize_app()


# ---------------------------------------------------------------------------
# Mock users (local development without Firebase)
# ---------------------------------------------------------------------------
MOCK_USERS = {
    "admin-token": {
        "id": "mock-admin",
        "email": "admin@escola.local",
        "display_name": "Administrador",
        "role": "admin",
    },
    "coordinator-token": {
        "id": "mock-coordinator",
        "email": "coordenacao@escola.local",
        "display_name": "Coordenação",
        "role": "coordinator",
    },
}


def _user_from_profile(profile: dict) -> dict:
    return {
        "id": profile["id"],
        "email": profile.get("email", ""),
        "display_name": profile.get("name", ""),
        "role": profile.get("role") or "teacher",
    }


# ---------------------------------------------------------------------------
# Token verification — the core auth function
# ---------------------------------------------------------------------------
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    gateway=Depends(get_gateway),
) -> dict:
    """Validate the Bearer token and return the user dict."""
    token = credentials.credentials

    if settings.AUTH_MODE == "mock":
        return await _mock_auth(token, gateway)

    return await _firebase_auth(token, gateway)


async def _mock_auth(token: str, gateway) -> dict:
    """Mock mode: look up token in MOCK_USERS or resolve "mock-<email>" against profiles."""
    user = MOCK_USERS.get(token)
    if user:
        return user

    if token.startswith("mock-"):
        email = token[5:]
        rows = await gateway.select("profiles", "*", [("eq", "email", email)])
        if rows:
            return _user_from_profile(rows[0])

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token.",
    )


async def _firebase_auth(token: str, gateway) -> dict:
    """Firebase mode: verify JWT, then get or create the Supabase profile."""
    _init_firebase()
    from firebase_admin import auth as fb_auth

    try:
        decoded = fb_auth.verify_id_token(token)
    except (fb_auth.InvalidIdTokenError, fb_auth.CertificateFetchError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired Firebase token",
        )

    uid = decoded["uid"]
    rows = await gateway.select("profiles", "*", [("eq", "id", uid)])
    if rows:
        return _user_from_profile(rows[0])

    email = decoded.get("email")
    if not email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Firebase account has no e-mail address.",
        )

    profile = await gateway.upsert("profiles", {
        "id": uid,
        "name": decoded.get("name") or email.split("@")[0],
        "email": email,
        "role": "teacher",
    })
    logger.info("Created profile for %s", email)
    return _user_from_profile(profile)


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[str]):
    """
    Usage:
        @router.post("/teachers")
        async def endpoint(user=Depends(require_role(["admin", "coordinator"]))):
    """

    async def role_checker(
        user: dict = Depends(get_current_user),
    ) -> dict:
        if user["role"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user['role']}' not authorized. Required: {allowed_roles}",
            )
        return user

    return role_checker
