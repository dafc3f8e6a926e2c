"""Client Manager for BuildTrack.

Provides lookup, listing and admin updates for client projects, plus
the onboarding-status flag the frontend uses to decide between the
onboarding flow and the dashboard.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, not_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import ClientIdentity
from ..constants import (
    DEFAULT_PAGE_LIMIT,
    MAX_BUILD_DAY,
    MIN_BUILD_DAY,
    ONBOARDING_FINISHED_PERCENT,
)
from ..db import DatabaseManager
from ..db.models import Client, QuizSubmission
from ..errors import ClientNotFoundError, StorageError, ValidationError
from ..phases.catalog import PlanTier, initial_phases_state, normalize_tier, parse_optional_tier
from ..phases.models import isoformat
from ..phases.mutations import UNSET
from ..phases.store import PhaseStateStore
from ..utils import utcnow

logger = logging.getLogger(__name__)


def is_onboarding_finished(client: Client) -> bool:
    """Finished once onboarding was committed or marked complete."""
    return (
        client.onboarding_completed_at is not None
        or (client.onboarding_percent or 0) >= ONBOARDING_FINISHED_PERCENT
    )


def client_to_dict(client: Client) -> Dict[str, Any]:
    """Serialize a Client row to the project shape the API returns."""
    return {
        "id": str(client.client_id),
        "project_id": str(client.client_id),
        "user_id": client.user_id,
        "email": client.email,
        "name": client.name,
        "kit_type": client.plan,
        "onboarding_percent": client.onboarding_percent or 0,
        "onboarding_finished": is_onboarding_finished(client),
        "onboarding_completed_at": isoformat(client.onboarding_completed_at),
        "current_day_of_14": client.current_day_of_14,
        "next_from_us": client.next_from_us,
        "next_from_you": client.next_from_you,
        "created_at": isoformat(client.created_at),
        "updated_at": isoformat(client.updated_at),
    }


def get_or_create_client(
    session: Session,
    identity: ClientIdentity,
    tier: PlanTier,
    name: Optional[str] = None,
) -> Tuple[Client, bool]:
    """Fetch the client for (identity, tier), creating and seeding it if absent.

    Returns:
        (client, created)
    """
    client = session.query(Client).filter(
        Client.user_id == identity.user_id,
        Client.plan == tier.value,
    ).first()
    if client is not None:
        if name and not client.name:
            client.name = name
        return client, False

    client = Client(
        user_id=identity.user_id,
        email=identity.email,
        name=name,
        plan=tier.value,
        onboarding_percent=0,
    )
    session.add(client)
    session.flush()

    PhaseStateStore(session).seed_phase_states(client.client_id, initial_phases_state(tier))
    logger.info(f"Created client {client.client_id} ({identity.email}, {tier.value})")
    return client, True


def _validate_build_day(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("current_day_of_14 must be an integer")
    if not MIN_BUILD_DAY <= value <= MAX_BUILD_DAY:
        raise ValidationError(
            f"current_day_of_14 must be between {MIN_BUILD_DAY} and {MAX_BUILD_DAY}"
        )
    return value


class ClientManager:
    """Manages client projects with database persistence."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        logger.info("ClientManager initialized")

    # =========================================================================
    # Lookup
    # =========================================================================

    def find_client(self, identity: ClientIdentity, kit_type: Optional[str] = None) -> Optional[Dict]:
        """Newest client matching the identity's user id or email."""
        tier = parse_optional_tier(kit_type)
        try:
            with self.db.get_session() as session:
                client = PhaseStateStore(session).find_client(
                    user_id=identity.user_id,
                    email=identity.email,
                    plan=tier.value if tier else None,
                )
                return client_to_dict(client) if client else None

        except SQLAlchemyError as e:
            logger.error(f"Failed to find client for {identity.email}: {e}")
            raise StorageError(f"Failed to find client for {identity.email}") from e

    def get_client(self, client_id: str) -> Optional[Dict]:
        try:
            with self.db.get_session() as session:
                client = PhaseStateStore(session).get_client(client_id)
                return client_to_dict(client) if client else None

        except SQLAlchemyError as e:
            logger.error(f"Failed to get client {client_id}: {e}")
            raise StorageError(f"Failed to get client {client_id}") from e

    def list_clients(
        self,
        kit_type: Optional[str] = None,
        onboarding_finished: Optional[bool] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """Page through clients, newest first.

        Missing names are filled from the client's newest quiz submission.
        """
        tier = parse_optional_tier(kit_type)
        try:
            with self.db.get_session() as session:
                query = session.query(Client)
                if tier is not None:
                    query = query.filter(Client.plan == tier.value)
                finished = or_(
                    Client.onboarding_completed_at.isnot(None),
                    Client.onboarding_percent >= ONBOARDING_FINISHED_PERCENT,
                )
                if onboarding_finished is True:
                    query = query.filter(finished)
                elif onboarding_finished is False:
                    query = query.filter(not_(finished))

                total = query.count()
                clients = query.order_by(Client.created_at.desc()).offset(offset).limit(limit).all()

                results = [client_to_dict(c) for c in clients]
                missing = {r["email"] for r in results if not r["name"]}
                if missing:
                    names = self._names_from_quiz(session, missing)
                    for r in results:
                        if not r["name"]:
                            r["name"] = names.get(r["email"])

                return {
                    "clients": results,
                    "total": total,
                    "count": len(results),
                    "limit": limit,
                    "offset": offset,
                    "has_more": offset + limit < total,
                }

        except SQLAlchemyError as e:
            logger.error(f"Failed to list clients: {e}")
            raise StorageError("Failed to list clients") from e

    @staticmethod
    def _names_from_quiz(session: Session, emails) -> Dict[str, str]:
        submissions = session.query(QuizSubmission).filter(
            func.lower(QuizSubmission.email).in_(list(emails))
        ).order_by(QuizSubmission.created_at.asc()).all()
        # Ascending order so the newest submission wins
        return {s.email.lower(): s.full_name for s in submissions if s.full_name}

    # =========================================================================
    # Admin updates
    # =========================================================================

    def update_client(
        self,
        client_id: str,
        current_day_of_14: Any = UNSET,
        next_from_us: Any = UNSET,
        next_from_you: Any = UNSET,
    ) -> Dict:
        """Update build-day and next-action fields.

        Raises:
            ValidationError: current_day_of_14 outside 1..14
            ClientNotFoundError: unknown client id
        """
        if current_day_of_14 is not UNSET:
            current_day_of_14 = _validate_build_day(current_day_of_14)

        try:
            with self.db.get_session() as session:
                client = PhaseStateStore(session).get_client(client_id)
                if client is None:
                    raise ClientNotFoundError(f"Project not found: {client_id}")

                if current_day_of_14 is not UNSET:
                    client.current_day_of_14 = current_day_of_14
                if next_from_us is not UNSET:
                    client.next_from_us = next_from_us
                if next_from_you is not UNSET:
                    client.next_from_you = next_from_you

                client.updated_at = utcnow()
                session.flush()

                logger.info(f"Updated client {client_id}")
                return client_to_dict(client)

        except SQLAlchemyError as e:
            logger.error(f"Failed to update client {client_id}: {e}")
            raise StorageError(f"Failed to update client {client_id}") from e

    # =========================================================================
    # Onboarding status
    # =========================================================================

    def get_onboarding_status(self, identity: ClientIdentity) -> Optional[Dict]:
        """Onboarding flag for the identity's newest client, or None."""
        try:
            with self.db.get_session() as session:
                client = PhaseStateStore(session).find_client(
                    user_id=identity.user_id, email=identity.email
                )
                if client is None:
                    return None

                return {
                    "email": client.email,
                    "onboarding_finished": is_onboarding_finished(client),
                    "kit_type": client.plan,
                    "onboarding_completed_at": isoformat(client.onboarding_completed_at),
                }

        except SQLAlchemyError as e:
            logger.error(f"Failed to get onboarding status for {identity.email}: {e}")
            raise StorageError(f"Failed to get onboarding status for {identity.email}") from e

    def set_onboarding_status(
        self,
        identity: ClientIdentity,
        kit_type: str,
        onboarding_finished: bool,
        name: Optional[str] = None,
    ) -> Dict:
        """Create or update the (identity, tier) client with the finished flag."""
        tier = normalize_tier(kit_type)
        try:
            with self.db.get_session() as session:
                client, _ = get_or_create_client(session, identity, tier, name=name)

                if onboarding_finished:
                    client.onboarding_percent = ONBOARDING_FINISHED_PERCENT
                    client.onboarding_completed_at = client.onboarding_completed_at or utcnow()
                else:
                    client.onboarding_percent = 0
                    client.onboarding_completed_at = None

                client.updated_at = utcnow()
                session.flush()

                logger.info(
                    f"Onboarding for {identity.email} ({tier.value}) set to "
                    f"{'finished' if onboarding_finished else 'not finished'}"
                )
                return client_to_dict(client)

        except SQLAlchemyError as e:
            logger.error(f"Failed to set onboarding status for {identity.email}: {e}")
            raise StorageError(f"Failed to set onboarding status for {identity.email}") from e
