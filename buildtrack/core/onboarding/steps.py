"""Onboarding step catalog and step evaluation.

Each tier has three questionnaire steps. A step counts as DONE once the
client has filled at least ``required_to_continue`` of its
``required_fields_total`` required fields; the threshold is per step
and deliberately below the total.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import ValidationError
from ..phases.catalog import PlanTier, normalize_tier
from ..phases.models import isoformat, parse_timestamp
from ..phases.progress import round_half_up
from ..utils import utcnow


class StepStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"

    @classmethod
    def parse(cls, value) -> "StepStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValidationError(
                f"Invalid step status: {value!r}. Must be one of: {', '.join(s.value for s in cls)}"
            )


@dataclass(frozen=True)
class StepDefinition:
    step_number: int
    title: str
    required_fields_total: int
    required_to_continue: int
    time_estimate: str


LAUNCH_KIT_STEPS: Tuple[StepDefinition, ...] = (
    StepDefinition(1, "Tell us who you are", 7, 6, "About 5 minutes"),
    StepDefinition(2, "Show us your brand", 7, 6, "About 8 minutes"),
    StepDefinition(3, "Switch on the site", 3, 2, "About 5 minutes"),
)

GROWTH_KIT_STEPS: Tuple[StepDefinition, ...] = (
    StepDefinition(1, "Snapshot and main offer", 12, 10, "About 8 minutes"),
    StepDefinition(2, "Clients, proof and content fuel", 9, 7, "About 10 minutes"),
    StepDefinition(3, "Systems and launch", 13, 10, "About 7 minutes"),
)

_STEPS_BY_TIER = {
    PlanTier.LAUNCH: LAUNCH_KIT_STEPS,
    PlanTier.GROWTH: GROWTH_KIT_STEPS,
}


def get_step_catalog(tier: Union[PlanTier, str]) -> Tuple[StepDefinition, ...]:
    return _STEPS_BY_TIER[normalize_tier(tier)]


def get_step_definition(tier: Union[PlanTier, str], step_number: int) -> StepDefinition:
    for step in get_step_catalog(tier):
        if step.step_number == step_number:
            return step
    raise ValidationError(f"Invalid step_number: {step_number}")


@dataclass
class StepProgress:
    """One step's answers and completion counts, as submitted or stored."""
    step_number: int
    title: str
    status: StepStatus
    required_fields_total: int
    required_fields_completed: int
    time_estimate: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StepProgress":
        """Parse a step payload, raising ValidationError on bad counts."""
        if not isinstance(data, Mapping):
            raise ValidationError("Each step must be an object")

        try:
            step_number = int(data["step_number"])
            total = int(data.get("required_fields_total") or 0)
            completed = int(data.get("required_fields_completed") or 0)
        except KeyError:
            raise ValidationError("step_number is required for every step")
        except (TypeError, ValueError):
            raise ValidationError("step_number and field counts must be integers")

        if total < 0 or completed < 0 or completed > total:
            raise ValidationError(
                f"Step {step_number}: required_fields_completed must be between 0 and {total}"
            )

        fields = data.get("fields") or {}
        if not isinstance(fields, Mapping):
            raise ValidationError(f"Step {step_number}: fields must be an object")

        return cls(
            step_number=step_number,
            title=str(data.get("title") or ""),
            status=StepStatus.parse(data.get("status") or StepStatus.NOT_STARTED),
            required_fields_total=total,
            required_fields_completed=completed,
            time_estimate=data.get("time_estimate"),
            fields=dict(fields),
            started_at=parse_timestamp(data.get("started_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
        )

    @classmethod
    def from_row(cls, row) -> "StepProgress":
        return cls(
            step_number=row.step_number,
            title=row.title,
            status=StepStatus.parse(row.status),
            required_fields_total=row.required_fields_total,
            required_fields_completed=row.required_fields_completed,
            time_estimate=row.time_estimate,
            fields=dict(row.fields or {}),
            started_at=row.started_at,
            completed_at=row.completed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_number": self.step_number,
            "title": self.title,
            "status": self.status.value,
            "required_fields_total": self.required_fields_total,
            "required_fields_completed": self.required_fields_completed,
            "time_estimate": self.time_estimate,
            "fields": dict(self.fields),
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
        }


def can_continue(definition: StepDefinition, required_fields_completed: int) -> bool:
    return required_fields_completed >= definition.required_to_continue


def evaluate_step(
    definition: StepDefinition,
    required_fields_completed: int,
    fields: Optional[Mapping[str, Any]] = None,
    started_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> StepProgress:
    """Build the StepProgress for a step given how many required fields are filled.

    The step is DONE once the threshold is met, otherwise IN_PROGRESS.
    """
    completed = max(0, min(int(required_fields_completed), definition.required_fields_total))
    now = now or utcnow()
    done = can_continue(definition, completed)

    return StepProgress(
        step_number=definition.step_number,
        title=definition.title,
        status=StepStatus.DONE if done else StepStatus.IN_PROGRESS,
        required_fields_total=definition.required_fields_total,
        required_fields_completed=completed,
        time_estimate=definition.time_estimate,
        fields=dict(fields or {}),
        started_at=started_at or now,
        completed_at=now if done else None,
    )


def onboarding_percent(steps: Sequence[StepProgress]) -> int:
    """Completed required fields over total required fields, across all steps."""
    total = sum(s.required_fields_total for s in steps)
    if total <= 0:
        return 0
    completed = sum(s.required_fields_completed for s in steps)
    return round_half_up(completed / total * 100)


def step_numbers(steps: Sequence[StepProgress]) -> List[int]:
    return sorted(s.step_number for s in steps)
