"""Client dashboard routes: the caller's own project."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from buildtrack.core.auth import ClientIdentity
from buildtrack.core.errors import BuildTrackError, ClientNotFoundError
from ..deps import get_client_identity, get_phase_tracker, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/my-project", tags=["my-project"])


class ChecklistToggleRequest(BaseModel):
    phase_id: str | None = None
    checklist_label: str | None = None
    is_done: Any = None


def parse_toggle(data: ChecklistToggleRequest, item_id: str):
    """Validate a toggle body; the path item_id stands in for a missing label."""
    if not isinstance(data.is_done, bool):
        raise HTTPException(
            status_code=400,
            detail="Missing or invalid field: is_done must be a boolean",
        )
    label = data.checklist_label or item_id
    if not data.phase_id or not label:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: phase_id and checklist_label",
        )
    return data.phase_id, label, data.is_done


# ── Routes ───────────────────────────────────────────────────────────────

@router.get("")
async def get_my_project(
    identity: ClientIdentity = Depends(get_client_identity),
    tracker=Depends(get_phase_tracker),
):
    """Dashboard for the caller; unstarted preview before onboarding."""
    try:
        try:
            return tracker.read_dashboard(identity)
        except ClientNotFoundError:
            logger.debug(f"No project yet for {identity.email}, returning preview")
            return tracker.preview_dashboard(identity)
    except BuildTrackError as e:
        raise http_error(e)


@router.get("/progress")
async def get_my_progress(
    identity: ClientIdentity = Depends(get_client_identity),
    tracker=Depends(get_phase_tracker),
):
    """Progress metrics for the caller's project."""
    try:
        return tracker.get_progress(identity).to_dict()
    except BuildTrackError as e:
        raise http_error(e)


@router.patch("/checklist/{item_id}")
async def toggle_my_checklist_item(
    item_id: str,
    data: ChecklistToggleRequest,
    identity: ClientIdentity = Depends(get_client_identity),
    tracker=Depends(get_phase_tracker),
):
    """Check or uncheck one checklist item on the caller's project."""
    phase_id, label, is_done = parse_toggle(data, item_id)
    try:
        result = tracker.toggle_checklist_item(identity, phase_id, label, is_done)
    except BuildTrackError as e:
        raise http_error(e)
    return {"success": True, **result.to_dict()}
