"""Admin project routes.

Client listing, build-day/next-action updates, and phase status and
checklist overrides addressed by project (client) id.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from buildtrack.core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from buildtrack.core.errors import BuildTrackError
from ..deps import get_client_manager, get_phase_tracker, http_error, require_admin
from .my_project import ChecklistToggleRequest, parse_toggle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


# ── Request models ───────────────────────────────────────────────────────

class ProjectUpdate(BaseModel):
    current_day_of_14: Any = None
    next_from_us: str | None = None
    next_from_you: str | None = None


class PhaseUpdate(BaseModel):
    status: str | None = None
    started_at: str | None = None
    completed_at: str | None = None


# ── Listings ─────────────────────────────────────────────────────────────

@router.get("/clients")
async def list_clients(
    kit_type: str | None = None,
    onboarding_finished: bool | None = None,
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(require_admin),
    cm=Depends(get_client_manager),
):
    """List client projects, newest first."""
    try:
        return cm.list_clients(
            kit_type=kit_type,
            onboarding_finished=onboarding_finished,
            limit=limit,
            offset=offset,
        )
    except BuildTrackError as e:
        raise http_error(e)


@router.get("/phases")
async def list_project_phases(
    kit_type: str | None = None,
    status: str | None = None,
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(require_admin),
    tracker=Depends(get_phase_tracker),
):
    """Every project's merged phases, optionally filtered by phase status."""
    try:
        return tracker.list_project_phases(kit_type=kit_type, status=status, limit=limit, offset=offset)
    except BuildTrackError as e:
        raise http_error(e)


# ── Single project ───────────────────────────────────────────────────────

@router.get("/{project_id}")
async def get_project(
    project_id: str,
    admin: dict = Depends(require_admin),
    cm=Depends(get_client_manager),
    tracker=Depends(get_phase_tracker),
):
    """Project details with merged phases and progress."""
    project = cm.get_client(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    try:
        phases = tracker.get_client_phases(project_id)
        progress = tracker.get_client_progress(project_id)
    except BuildTrackError as e:
        raise http_error(e)

    project["phases"] = [p.to_dict() for p in phases]
    return {"project": project, "progress": progress.to_dict()}


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    admin: dict = Depends(require_admin),
    cm=Depends(get_client_manager),
):
    """Update current build day and next actions. Omitted fields are left alone."""
    updates = {name: getattr(data, name) for name in data.model_fields_set}
    try:
        project = cm.update_client(project_id, **updates)
    except BuildTrackError as e:
        raise http_error(e)
    return {"success": True, "project": project}


@router.get("/{project_id}/phases")
async def get_project_phases(
    project_id: str,
    admin: dict = Depends(require_admin),
    tracker=Depends(get_phase_tracker),
):
    """Merged phases for one project."""
    try:
        phases = tracker.get_client_phases(project_id)
    except BuildTrackError as e:
        raise http_error(e)
    return {"project_id": project_id, "phases": [p.to_dict() for p in phases]}


@router.patch("/{project_id}/phases/{phase_id}")
async def update_project_phase(
    project_id: str,
    phase_id: str,
    data: PhaseUpdate,
    admin: dict = Depends(require_admin),
    tracker=Depends(get_phase_tracker),
):
    """Override a phase's status and/or timestamps."""
    updates = {name: getattr(data, name) for name in data.model_fields_set}
    if "status" in updates and updates["status"] is None:
        raise HTTPException(status_code=400, detail="status cannot be null")

    try:
        phase = tracker.update_client_phase(project_id, phase_id, **updates)
    except BuildTrackError as e:
        raise http_error(e)
    return {"success": True, "phase": phase}


@router.patch("/{project_id}/phases/{phase_id}/checklist/{item_id}")
async def toggle_project_checklist_item(
    project_id: str,
    phase_id: str,
    item_id: str,
    data: ChecklistToggleRequest,
    admin: dict = Depends(require_admin),
    tracker=Depends(get_phase_tracker),
):
    """Check or uncheck a checklist item on any project."""
    if data.phase_id is None:
        data.phase_id = phase_id
    elif data.phase_id != phase_id:
        raise HTTPException(status_code=400, detail="phase_id in body does not match the URL")

    phase_id, label, is_done = parse_toggle(data, item_id)
    try:
        result = tracker.toggle_client_checklist_item(project_id, phase_id, label, is_done)
    except BuildTrackError as e:
        raise http_error(e)
    return {"success": True, **result.to_dict()}
