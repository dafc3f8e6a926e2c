"""Client-side onboarding draft.

Holds step answers while a client works through the questionnaire.
Nothing here is persisted: the draft is a scratch buffer and only
``commit`` writes anything, through OnboardingService.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from ..auth import normalize_email
from ..errors import ValidationError
from ..phases.catalog import PlanTier, normalize_tier
from .steps import (
    StepProgress,
    can_continue,
    evaluate_step,
    get_step_catalog,
    get_step_definition,
    onboarding_percent,
)

logger = logging.getLogger(__name__)


class OnboardingDraft:
    """In-memory answers for one (email, tier) onboarding run."""

    def __init__(self, email: str, kit_type: Union[PlanTier, str]):
        self.email = normalize_email(email)
        self.tier = normalize_tier(kit_type)
        self._steps: Dict[int, StepProgress] = {}

    def record_step(
        self,
        step_number: int,
        required_fields_completed: int,
        fields: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> StepProgress:
        """Record (or re-record) a step's answers; the first start time is kept."""
        definition = get_step_definition(self.tier, step_number)
        previous = self._steps.get(step_number)
        step = evaluate_step(
            definition,
            required_fields_completed,
            fields=fields,
            started_at=previous.started_at if previous else None,
            now=now,
        )
        self._steps[step_number] = step
        return step

    def get_step(self, step_number: int) -> Optional[StepProgress]:
        return self._steps.get(step_number)

    def can_continue(self, step_number: int) -> bool:
        step = self._steps.get(step_number)
        if step is None:
            return False
        return can_continue(get_step_definition(self.tier, step_number), step.required_fields_completed)

    def is_complete(self) -> bool:
        """Every step recorded and past its threshold."""
        return all(self.can_continue(d.step_number) for d in get_step_catalog(self.tier))

    @property
    def steps(self) -> List[StepProgress]:
        return [self._steps[n] for n in sorted(self._steps)]

    @property
    def percent(self) -> int:
        return onboarding_percent(self.steps)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "kit_type": self.tier.value,
            "steps": [s.to_dict() for s in self.steps],
        }

    def commit(self, service) -> Dict[str, Any]:
        """Persist through ``service.complete_onboarding``.

        Raises:
            ValidationError: some step is missing or below its threshold
        """
        if not self.is_complete():
            pending = [
                d.step_number for d in get_step_catalog(self.tier)
                if not self.can_continue(d.step_number)
            ]
            raise ValidationError(f"Onboarding steps not complete: {pending}")

        logger.debug(f"Committing onboarding draft for {self.email} ({self.tier.value})")
        return service.complete_onboarding(self.email, self.tier.value, self.steps)
