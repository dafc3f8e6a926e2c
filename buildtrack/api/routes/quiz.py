"""Quiz submission routes.

Creating a submission is public; reading submissions requires admin.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from buildtrack.core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from buildtrack.core.errors import BuildTrackError
from ..deps import get_quiz_manager, http_error, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz-submissions", tags=["quiz"])


class QuizSubmissionCreate(BaseModel):
    full_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    brand_name: str | None = None
    logo_status: str | None = None
    brand_goals: list[Any] | None = None
    online_presence: str | None = None
    audience: list[Any] | None = None
    brand_style: str | None = None
    timeline: str | None = None
    preferred_kit: str | None = None


@router.post("", status_code=201)
async def create_submission(data: QuizSubmissionCreate, quiz=Depends(get_quiz_manager)):
    """Submit the pre-signup quiz."""
    try:
        submission = quiz.create_submission(data.model_dump())
    except BuildTrackError as e:
        raise http_error(e)
    return {"success": True, "submission": submission}


@router.get("")
async def list_submissions(
    kit_type: str | None = None,
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(require_admin),
    quiz=Depends(get_quiz_manager),
):
    """List submissions, newest first."""
    try:
        return quiz.list_submissions(kit_type=kit_type, limit=limit, offset=offset)
    except BuildTrackError as e:
        raise http_error(e)


@router.get("/users")
async def list_quiz_users(
    email: str | None = None,
    kit_type: str | None = None,
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(require_admin),
    quiz=Depends(get_quiz_manager),
):
    """One row per unique quiz email, with project info when present."""
    try:
        return quiz.list_users(email=email, kit_type=kit_type, limit=limit, offset=offset)
    except BuildTrackError as e:
        raise http_error(e)


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    admin: dict = Depends(require_admin),
    quiz=Depends(get_quiz_manager),
):
    """One submission with its project and submission history."""
    try:
        return quiz.get_submission(submission_id)
    except BuildTrackError as e:
        raise http_error(e)
