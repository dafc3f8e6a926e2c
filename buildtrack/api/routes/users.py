"""User lookup and onboarding-status routes (public).

The email comes from the request body or ``?email=``, falling back to
the logged-in session.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from buildtrack.core.auth import ClientIdentity
from buildtrack.core.errors import BuildTrackError
from buildtrack.core.phases.catalog import PlanTier
from ..deps import get_client_manager, get_optional_identity, get_quiz_manager, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class LookupRequest(BaseModel):
    email: str | None = None


class OnboardingStatusUpdate(BaseModel):
    email: str | None = None
    onboarding_finished: bool = False
    kit_type: str | None = None


def _identity_or_400(email: Optional[str], fallback: Optional[ClientIdentity]) -> ClientIdentity:
    if email:
        return ClientIdentity.from_email(email)
    if fallback is not None:
        return fallback
    raise HTTPException(status_code=400, detail="Email is required")


@router.post("/lookup")
async def lookup_user(data: LookupRequest, quiz=Depends(get_quiz_manager)):
    """Check whether an email may log in and which kits it has."""
    try:
        return quiz.lookup_user(data.email)
    except BuildTrackError as e:
        raise http_error(e)


@router.get("/onboarding")
async def get_onboarding_status(
    email: str | None = None,
    identity: Optional[ClientIdentity] = Depends(get_optional_identity),
    cm=Depends(get_client_manager),
):
    """Onboarding status for an email; null when it has no project."""
    try:
        return cm.get_onboarding_status(_identity_or_400(email, identity))
    except BuildTrackError as e:
        raise http_error(e)


@router.post("/onboarding")
async def set_onboarding_status(
    data: OnboardingStatusUpdate,
    identity: Optional[ClientIdentity] = Depends(get_optional_identity),
    cm=Depends(get_client_manager),
):
    """Create or update the project's onboarding flag (kit defaults to LAUNCH)."""
    try:
        project = cm.set_onboarding_status(
            _identity_or_400(data.email, identity),
            kit_type=data.kit_type or PlanTier.LAUNCH.value,
            onboarding_finished=data.onboarding_finished,
        )
    except BuildTrackError as e:
        raise http_error(e)

    return {
        "email": project["email"],
        "onboarding_finished": project["onboarding_finished"],
        "kit_type": project["kit_type"],
    }
