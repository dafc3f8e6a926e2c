"""Quiz Manager for BuildTrack.

Stores pre-signup quiz submissions. A submission is what lets an email
log in: ``lookup_user`` is the login gate.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from ..auth import ClientIdentity, normalize_email
from ..clients.client_manager import is_onboarding_finished
from ..constants import DEFAULT_PAGE_LIMIT
from ..db import DatabaseManager
from ..db.models import Client, QuizSubmission
from ..errors import StorageError, SubmissionNotFoundError, ValidationError
from ..phases.catalog import PlanTier, parse_optional_tier
from ..phases.models import isoformat
from ..phases.store import PhaseStateStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "email",
    "full_name",
    "brand_name",
    "logo_status",
    "online_presence",
    "brand_style",
    "timeline",
)


def _preferred_kit(value) -> Optional[str]:
    """Normalize preferred_kit; anything that is not a known tier becomes None."""
    if not isinstance(value, str):
        return None
    try:
        return PlanTier(value.strip().upper()).value
    except ValueError:
        return None


def _as_list(value) -> List:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class QuizManager:
    """Manages quiz submissions with database persistence."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        logger.info("QuizManager initialized")

    # =========================================================================
    # Submissions
    # =========================================================================

    def create_submission(self, data: Mapping[str, Any]) -> Dict:
        """Create a submission.

        Raises:
            ValidationError: a required field is missing or blank
        """
        missing = [
            name for name in REQUIRED_FIELDS
            if not isinstance(data.get(name), str) or not data.get(name).strip()
        ]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}"
            )

        try:
            with self.db.get_session() as session:
                submission = QuizSubmission(
                    full_name=data["full_name"].strip(),
                    email=normalize_email(data["email"]),
                    phone_number=data.get("phone_number") or None,
                    brand_name=data["brand_name"].strip(),
                    logo_status=data["logo_status"],
                    brand_goals=_as_list(data.get("brand_goals")),
                    online_presence=data["online_presence"],
                    audience=_as_list(data.get("audience")),
                    brand_style=data["brand_style"],
                    timeline=data["timeline"],
                    preferred_kit=_preferred_kit(data.get("preferred_kit")),
                )
                session.add(submission)
                session.flush()

                logger.info(f"Created quiz submission {submission.submission_id} ({submission.email})")
                return self._submission_to_dict(submission)

        except SQLAlchemyError as e:
            logger.error(f"Failed to create quiz submission: {e}")
            raise StorageError("Failed to create quiz submission") from e

    def list_submissions(
        self,
        kit_type: Optional[str] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Dict[str, Any]:
        tier = parse_optional_tier(kit_type)
        try:
            with self.db.get_session() as session:
                query = session.query(QuizSubmission)
                if tier is not None:
                    query = query.filter(QuizSubmission.preferred_kit == tier.value)

                total = query.count()
                rows = query.order_by(QuizSubmission.created_at.desc()).offset(offset).limit(limit).all()

                return {
                    "submissions": [self._submission_to_dict(s) for s in rows],
                    "total": total,
                    "limit": limit,
                    "offset": offset,
                }

        except SQLAlchemyError as e:
            logger.error(f"Failed to list quiz submissions: {e}")
            raise StorageError("Failed to list quiz submissions") from e

    def get_submission(self, submission_id: str) -> Dict:
        """One submission with the matching client and submission history.

        Raises:
            SubmissionNotFoundError: unknown or malformed id
        """
        try:
            submission_uuid = UUID(str(submission_id))
        except ValueError:
            raise SubmissionNotFoundError(f"Quiz submission not found: {submission_id}")

        try:
            with self.db.get_session() as session:
                submission = session.query(QuizSubmission).filter(
                    QuizSubmission.submission_id == submission_uuid
                ).first()
                if submission is None:
                    raise SubmissionNotFoundError(f"Quiz submission not found: {submission_id}")

                history = session.query(QuizSubmission).filter(
                    QuizSubmission.email == submission.email
                ).order_by(QuizSubmission.created_at.desc()).all()

                client = PhaseStateStore(session).find_client(email=submission.email)

                return {
                    "submission": self._submission_to_dict(submission),
                    "project": self._project_summary(client),
                    "submission_history": [
                        {
                            "id": str(s.submission_id),
                            "email": s.email,
                            "preferred_kit": s.preferred_kit,
                            "created_at": isoformat(s.created_at),
                        }
                        for s in history
                    ],
                    "summary": {
                        "has_project": client is not None,
                        "total_submissions": len(history),
                    },
                }

        except SQLAlchemyError as e:
            logger.error(f"Failed to get quiz submission {submission_id}: {e}")
            raise StorageError(f"Failed to get quiz submission {submission_id}") from e

    # =========================================================================
    # Users
    # =========================================================================

    def list_users(
        self,
        email: Optional[str] = None,
        kit_type: Optional[str] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """One entry per unique email (its newest submission), newest first."""
        tier = parse_optional_tier(kit_type)
        try:
            with self.db.get_session() as session:
                query = session.query(QuizSubmission)
                if email:
                    query = query.filter(QuizSubmission.email == normalize_email(email))
                if tier is not None:
                    query = query.filter(QuizSubmission.preferred_kit == tier.value)

                latest: Dict[str, QuizSubmission] = {}
                for submission in query.order_by(QuizSubmission.created_at.desc()).all():
                    latest.setdefault(submission.email.lower(), submission)

                page = list(latest.values())[offset:offset + limit]
                store = PhaseStateStore(session)

                users = []
                for submission in page:
                    client = store.find_client(email=submission.email.lower())
                    user = self._submission_to_dict(submission)
                    user["user_uuid"] = user["id"]
                    user["submission_date"] = user["created_at"]
                    user["has_project"] = client is not None
                    user["project"] = self._project_summary(client)
                    users.append(user)

                total = len(latest)
                return {
                    "users": users,
                    "total": total,
                    "limit": limit,
                    "offset": offset,
                    "has_more": offset + limit < total,
                }

        except SQLAlchemyError as e:
            logger.error(f"Failed to list quiz users: {e}")
            raise StorageError("Failed to list quiz users") from e

    def lookup_user(self, email: str) -> Dict[str, Any]:
        """Login gate: whether the email may log in, and with which tiers.

        Raises:
            ValidationError: email missing
        """
        identity = ClientIdentity.from_email(email)
        try:
            with self.db.get_session() as session:
                submissions = session.query(QuizSubmission).filter(
                    QuizSubmission.email == identity.email
                ).order_by(QuizSubmission.created_at.desc()).all()

                if not submissions:
                    logger.debug(f"Lookup for unregistered email {identity.email}")
                    return {
                        "exists": False,
                        "error": "This email is not registered. Please complete the quiz to get access.",
                    }

                clients = session.query(Client).filter(
                    (Client.user_id == identity.user_id) | (Client.email == identity.email)
                ).all()

                kits: List[str] = []
                for kit in [s.preferred_kit for s in submissions] + [c.plan for c in clients]:
                    if kit in (PlanTier.LAUNCH.value, PlanTier.GROWTH.value) and kit not in kits:
                        kits.append(kit)

                latest = submissions[0]
                kit_type = latest.preferred_kit or (kits[0] if kits else PlanTier.LAUNCH.value)

                return {
                    "exists": True,
                    "name": latest.full_name,
                    "kit_type": kit_type,
                    "available_kit_types": kits or [kit_type],
                    "onboarding_finished": any(is_onboarding_finished(c) for c in clients),
                    "quiz_submission": self._submission_to_dict(latest),
                }

        except SQLAlchemyError as e:
            logger.error(f"User lookup failed for {identity.email}: {e}")
            raise StorageError(f"User lookup failed for {identity.email}") from e

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _project_summary(client: Optional[Client]) -> Optional[Dict]:
        if client is None:
            return None
        return {
            "id": str(client.client_id),
            "kit_type": client.plan,
            "onboarding_finished": is_onboarding_finished(client),
            "onboarding_percent": client.onboarding_percent or 0,
            "current_day_of_14": client.current_day_of_14,
            "next_from_us": client.next_from_us,
            "next_from_you": client.next_from_you,
        }

    @staticmethod
    def _submission_to_dict(submission: QuizSubmission) -> Dict:
        return {
            "id": str(submission.submission_id),
            "full_name": submission.full_name,
            "email": submission.email,
            "phone_number": submission.phone_number,
            "brand_name": submission.brand_name,
            "logo_status": submission.logo_status,
            "brand_goals": submission.brand_goals or [],
            "online_presence": submission.online_presence,
            "audience": submission.audience or [],
            "brand_style": submission.brand_style,
            "timeline": submission.timeline,
            "preferred_kit": submission.preferred_kit,
            "created_at": isoformat(submission.created_at),
            "updated_at": isoformat(submission.updated_at),
        }
