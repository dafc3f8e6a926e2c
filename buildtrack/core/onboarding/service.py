"""Onboarding persistence.

Commits all three questionnaire steps for a client in one transaction,
creating the client (with initial phase state) on first completion.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError

from ..auth import ClientIdentity
from ..clients.client_manager import client_to_dict, get_or_create_client
from ..constants import ONBOARDING_STEP_COUNT
from ..db import DatabaseManager
from ..db.models import Client, OnboardingStep, QuizSubmission
from ..errors import StorageError, ValidationError
from ..phases.catalog import normalize_tier
from ..utils import utcnow
from .steps import (
    StepProgress,
    StepStatus,
    get_step_definition,
    onboarding_percent,
    step_numbers,
)

logger = logging.getLogger(__name__)

StepInput = Union[StepProgress, Mapping[str, Any]]


class OnboardingService:
    """Saves onboarding answers with database persistence."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        logger.info("OnboardingService initialized")

    @staticmethod
    def _parse_steps(steps: Sequence[StepInput]) -> List[StepProgress]:
        if not isinstance(steps, (list, tuple)) or len(steps) != ONBOARDING_STEP_COUNT:
            raise ValidationError(f"Exactly {ONBOARDING_STEP_COUNT} steps are required")

        parsed = [s if isinstance(s, StepProgress) else StepProgress.from_dict(s) for s in steps]
        if step_numbers(parsed) != list(range(1, ONBOARDING_STEP_COUNT + 1)):
            raise ValidationError(
                f"Steps must be numbered 1 to {ONBOARDING_STEP_COUNT} with no duplicates"
            )
        return parsed

    def complete_onboarding(
        self,
        email: str,
        kit_type: str,
        steps: Sequence[StepInput],
    ) -> Dict[str, Any]:
        """Persist every step and mark the client's onboarding finished.

        Args:
            email: The client's email
            kit_type: Plan tier the onboarding was done for
            steps: Exactly three step payloads

        Returns:
            Dict with the project and the saved steps

        Raises:
            ValidationError: missing email/tier or malformed steps
        """
        identity = ClientIdentity.from_email(email)
        tier = normalize_tier(kit_type)
        parsed = self._parse_steps(steps)
        for step in parsed:
            definition = get_step_definition(tier, step.step_number)
            step.title = step.title or definition.title
            step.time_estimate = step.time_estimate or definition.time_estimate
        percent = onboarding_percent(parsed)

        try:
            with self.db.get_session() as session:
                name = self._name_from_quiz(session, identity.email)
                client, created = get_or_create_client(session, identity, tier, name=name)

                now = utcnow()
                saved = [self._upsert_step(session, client, step, now) for step in parsed]

                client.onboarding_percent = percent
                client.onboarding_completed_at = now
                client.updated_at = now
                session.flush()

                logger.info(
                    f"Onboarding completed for {identity.email} ({tier.value}): "
                    f"{percent}% of required fields{' (new client)' if created else ''}"
                )
                return {
                    "success": True,
                    "project": client_to_dict(client),
                    "steps": [s.to_dict() for s in saved],
                }

        except SQLAlchemyError as e:
            logger.error(f"Failed to complete onboarding for {identity.email}: {e}")
            raise StorageError(f"Failed to complete onboarding for {identity.email}") from e

    def get_steps(self, email: str, kit_type: str) -> List[StepProgress]:
        """Stored steps for the (email, tier) client; empty if none."""
        identity = ClientIdentity.from_email(email)
        tier = normalize_tier(kit_type)
        try:
            with self.db.get_session() as session:
                client = session.query(Client).filter(
                    Client.user_id == identity.user_id,
                    Client.plan == tier.value,
                ).first()
                if client is None:
                    return []
                return [StepProgress.from_row(row) for row in client.onboarding_steps]

        except SQLAlchemyError as e:
            logger.error(f"Failed to load onboarding steps for {identity.email}: {e}")
            raise StorageError(f"Failed to load onboarding steps for {identity.email}") from e

    @staticmethod
    def _name_from_quiz(session, email: str):
        submission = session.query(QuizSubmission).filter(
            QuizSubmission.email == email
        ).order_by(QuizSubmission.created_at.desc()).first()
        return submission.full_name if submission else None

    @staticmethod
    def _upsert_step(session, client: Client, step: StepProgress, now: datetime) -> StepProgress:
        row = session.query(OnboardingStep).filter(
            OnboardingStep.client_id == client.client_id,
            OnboardingStep.step_number == step.step_number,
        ).first()
        if row is None:
            row = OnboardingStep(client_id=client.client_id, step_number=step.step_number)
            session.add(row)

        row.title = step.title
        row.status = step.status.value
        row.required_fields_total = step.required_fields_total
        row.required_fields_completed = step.required_fields_completed
        row.time_estimate = step.time_estimate
        row.fields = dict(step.fields)
        row.started_at = step.started_at or now
        if step.completed_at:
            row.completed_at = step.completed_at
        else:
            row.completed_at = now if step.status == StepStatus.DONE else None
        row.updated_at = now

        session.flush()
        return StepProgress.from_row(row)
