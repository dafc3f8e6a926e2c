"""Email login routes.

Login is gated by a quiz submission: an email with no submission cannot
log in unless it is a configured admin email.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from buildtrack.core.auth import ClientIdentity
from buildtrack.core.constants import ROLE_ADMIN, ROLE_CLIENT
from buildtrack.core.errors import BuildTrackError
from ..deps import get_quiz_manager, get_settings, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str | None = None


# ── Routes ───────────────────────────────────────────────────────────────

@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    quiz=Depends(get_quiz_manager),
    settings=Depends(get_settings),
):
    """Log in with an email that has a quiz submission."""
    try:
        identity = ClientIdentity.from_email(data.email)
        lookup = quiz.lookup_user(identity.email)
    except BuildTrackError as e:
        raise http_error(e)

    is_admin = settings.is_admin_email(identity.email)
    if not lookup["exists"] and not is_admin:
        raise HTTPException(status_code=401, detail=lookup["error"])

    roles = [ROLE_CLIENT] + ([ROLE_ADMIN] if is_admin else [])

    request.session["user_id"] = identity.user_id
    request.session["email"] = identity.email
    request.session["roles"] = roles

    logger.info(f"Login: {identity.email} ({', '.join(roles)})")
    return {
        "success": True,
        "user": {
            "user_id": identity.user_id,
            "email": identity.email,
            "name": lookup.get("name"),
            "roles": roles,
            "kit_type": lookup.get("kit_type"),
            "available_kit_types": lookup.get("available_kit_types", []),
            "onboarding_finished": lookup.get("onboarding_finished", False),
        },
    }


@router.post("/logout")
async def logout(request: Request):
    """Logout current user."""
    request.session.clear()
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def get_me(request: Request):
    """Get current logged-in identity."""
    email = request.session.get("email")
    if not email:
        return {"success": True, "authenticated": False, "user": None}

    return {
        "success": True,
        "authenticated": True,
        "user": {
            "user_id": request.session.get("user_id"),
            "email": email,
            "roles": request.session.get("roles", []),
        },
    }
