"""Onboarding routes."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from buildtrack.core.auth import ClientIdentity
from buildtrack.core.errors import BuildTrackError
from ..deps import get_onboarding_service, get_optional_identity, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


class CompleteOnboardingRequest(BaseModel):
    email: str | None = None
    kit_type: str | None = None
    steps: list[dict[str, Any]] | None = None


@router.post("/complete")
async def complete_onboarding(
    data: CompleteOnboardingRequest,
    svc=Depends(get_onboarding_service),
):
    """Save all three onboarding steps and finish onboarding."""
    if not data.email or not data.kit_type or data.steps is None:
        raise HTTPException(status_code=400, detail="Email, kit_type, and steps are required")

    try:
        return svc.complete_onboarding(data.email, data.kit_type, data.steps)
    except BuildTrackError as e:
        raise http_error(e)


@router.get("/steps")
async def get_onboarding_steps(
    kit_type: str,
    email: str | None = None,
    identity: Optional[ClientIdentity] = Depends(get_optional_identity),
    svc=Depends(get_onboarding_service),
):
    """Previously saved steps for the caller's (email, kit) project."""
    email = email or (identity.email if identity else None)
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")

    try:
        steps = svc.get_steps(email, kit_type)
    except BuildTrackError as e:
        raise http_error(e)
    return {"steps": [s.to_dict() for s in steps]}
