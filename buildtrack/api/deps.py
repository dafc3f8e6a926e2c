"""FastAPI dependencies for BuildTrack.

Provides shared dependencies (identity, admin checks, services) via
FastAPI's Depends() injection system.
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request

from buildtrack.core.auth import ClientIdentity, resolve_identity
from buildtrack.core.constants import ADMIN_KEY_HEADER, ROLE_ADMIN, USER_EMAIL_HEADER
from buildtrack.core.errors import (
    BuildTrackError,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def http_error(error: BuildTrackError) -> HTTPException:
    """Map a domain error to the HTTP status the API reports it with."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StorageError):
        return HTTPException(status_code=503, detail="Storage unavailable")
    logger.error(f"Unmapped domain error: {error}")
    return HTTPException(status_code=500, detail="Internal server error")


async def get_settings(request: Request):
    """Get Settings from app state."""
    return request.app.state.settings


async def get_db_manager(request: Request):
    """Get DatabaseManager from app state."""
    return request.app.state.db_manager


async def get_phase_tracker(request: Request):
    """Get PhaseTracker from app state."""
    return request.app.state.phase_tracker


async def get_client_manager(request: Request):
    """Get ClientManager from app state."""
    return request.app.state.client_manager


async def get_quiz_manager(request: Request):
    """Get QuizManager from app state."""
    return request.app.state.quiz_manager


async def get_onboarding_service(request: Request):
    """Get OnboardingService from app state."""
    return request.app.state.onboarding_service


async def get_optional_identity(request: Request) -> Optional[ClientIdentity]:
    """Resolve the caller from session, email header or ?email=; None if absent."""
    try:
        return resolve_identity(
            session_email=request.session.get("email"),
            header_email=request.headers.get(USER_EMAIL_HEADER),
            query_email=request.query_params.get("email"),
        )
    except ValidationError:
        return None


async def get_client_identity(
    identity: Optional[ClientIdentity] = Depends(get_optional_identity),
) -> ClientIdentity:
    """FastAPI dependency for client-facing routes. Raises 401 if unidentified."""
    if identity is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return identity


async def require_admin(request: Request, settings=Depends(get_settings)) -> dict:
    """Require an admin session or a matching admin API key. Raises 401/403."""
    api_key = request.headers.get(ADMIN_KEY_HEADER)
    if api_key and settings.admin_api_key and secrets.compare_digest(api_key, settings.admin_api_key):
        return {"user_id": None, "email": None, "roles": [ROLE_ADMIN]}

    session = request.session
    if not session.get("email"):
        raise HTTPException(status_code=401, detail="Not authenticated")

    roles = session.get("roles", [])
    if ROLE_ADMIN not in roles:
        raise HTTPException(status_code=403, detail="Admin access required")
    return {"user_id": session.get("user_id"), "email": session.get("email"), "roles": roles}
