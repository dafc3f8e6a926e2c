"""Progress aggregation over merged phases.

Pure functions of their inputs; the dashboard and admin views call
``compute_progress`` on the output of the merge engine.

Percentages use half-up rounding (``math.floor(x + 0.5)``) rather than
Python's round-half-even, so 12.5 renders as 13 and 0.25 of 1000 as 0.3.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..constants import TOTAL_BUILD_DAYS
from .models import ChecklistItem, MergedPhase, PhaseStatus


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def phase_percent(completed: int, total: int) -> int:
    """Whole-number percentage of phases completed."""
    if total <= 0:
        return 0
    return round_half_up(completed / total * 100)


def checklist_percent(completed: int, total: int) -> float:
    """Percentage of checklist items done, to one decimal place."""
    if total <= 0:
        return 0
    return round_half_up(completed / total * 1000) / 10


# =============================================================================
# Result types
# =============================================================================

@dataclass(frozen=True)
class PhaseCompletion:
    total_phases: int
    completed_phases: int
    in_progress_phases: int
    not_started_phases: int
    phase_completion_percent: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_phases": self.total_phases,
            "completed_phases": self.completed_phases,
            "in_progress_phases": self.in_progress_phases,
            "not_started_phases": self.not_started_phases,
            "phase_completion_percent": self.phase_completion_percent,
        }


@dataclass(frozen=True)
class ChecklistCompletion:
    total_items: int
    completed_items: int
    completion_percent: float

    @property
    def remaining_items(self) -> int:
        return self.total_items - self.completed_items

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_items": self.total_items,
            "completed_items": self.completed_items,
            "remaining_items": self.remaining_items,
            "completion_percent": self.completion_percent,
        }

    def to_phase_dict(self) -> Dict[str, Any]:
        """Shape used for the current phase's checklist_completion."""
        return {
            "completed": self.completed_items,
            "total": self.total_items,
            "percent": self.completion_percent,
        }


@dataclass(frozen=True)
class CurrentPhase:
    phase_id: str
    phase_number: int
    title: str
    status: PhaseStatus
    checklist_completion: ChecklistCompletion

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase_id": self.phase_id,
            "phase_number": self.phase_number,
            "title": self.title,
            "status": self.status.value,
            "checklist_completion": self.checklist_completion.to_phase_dict(),
        }


@dataclass(frozen=True)
class Timeline:
    current_day: int
    total_days: int
    days_remaining: int
    percent_complete: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_day": self.current_day,
            "total_days": self.total_days,
            "days_remaining": self.days_remaining,
            "percent_complete": self.percent_complete,
        }


@dataclass(frozen=True)
class ProgressSummary:
    overall_progress: PhaseCompletion
    checklist_progress: ChecklistCompletion
    current_phase: Optional[CurrentPhase]
    next_from_us: Optional[str]
    next_from_you: Optional[str]
    timeline: Timeline

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_progress": self.overall_progress.to_dict(),
            "checklist_progress": self.checklist_progress.to_dict(),
            "current_phase": self.current_phase.to_dict() if self.current_phase else None,
            "next_actions": {
                "from_us": self.next_from_us,
                "from_you": self.next_from_you,
            },
            "timeline": self.timeline.to_dict(),
        }


# =============================================================================
# Aggregation
# =============================================================================

def summarize_phases(phases: Sequence[MergedPhase]) -> PhaseCompletion:
    total = len(phases)
    completed = sum(1 for p in phases if p.status == PhaseStatus.DONE)
    return PhaseCompletion(
        total_phases=total,
        completed_phases=completed,
        in_progress_phases=sum(1 for p in phases if p.status == PhaseStatus.IN_PROGRESS),
        not_started_phases=sum(1 for p in phases if p.status == PhaseStatus.NOT_STARTED),
        phase_completion_percent=phase_percent(completed, total),
    )


def summarize_checklist(items: Iterable[ChecklistItem]) -> ChecklistCompletion:
    items = list(items)
    completed = sum(1 for item in items if item.is_done)
    return ChecklistCompletion(
        total_items=len(items),
        completed_items=completed,
        completion_percent=checklist_percent(completed, len(items)),
    )


def select_current_phase(phases: Sequence[MergedPhase]) -> Optional[MergedPhase]:
    """Pick the phase that represents where the client is now.

    IN_PROGRESS wins, then WAITING_ON_CLIENT (first in catalog order for
    either), then the highest-numbered DONE phase, then the first phase.
    """
    for status in (PhaseStatus.IN_PROGRESS, PhaseStatus.WAITING_ON_CLIENT):
        for phase in phases:
            if phase.status == status:
                return phase

    done = [p for p in phases if p.status == PhaseStatus.DONE]
    if done:
        return max(done, key=lambda p: p.phase_number)

    return phases[0] if phases else None


def compute_timeline(current_day_of_14: Optional[int]) -> Timeline:
    current_day = current_day_of_14 or 0
    return Timeline(
        current_day=current_day,
        total_days=TOTAL_BUILD_DAYS,
        days_remaining=max(0, TOTAL_BUILD_DAYS - current_day),
        percent_complete=round_half_up(current_day / TOTAL_BUILD_DAYS * 1000) / 10,
    )


def compute_progress(
    phases: List[MergedPhase],
    current_day_of_14: Optional[int] = None,
    next_from_us: Optional[str] = None,
    next_from_you: Optional[str] = None,
) -> ProgressSummary:
    """Compute every dashboard metric from merged phases and client fields."""
    current = select_current_phase(phases)
    current_phase = None
    if current is not None:
        current_phase = CurrentPhase(
            phase_id=current.phase_id,
            phase_number=current.phase_number,
            title=current.title,
            status=current.status,
            checklist_completion=summarize_checklist(current.checklist),
        )

    return ProgressSummary(
        overall_progress=summarize_phases(phases),
        checklist_progress=summarize_checklist(item for p in phases for item in p.checklist),
        current_phase=current_phase,
        next_from_us=next_from_us,
        next_from_you=next_from_you,
        timeline=compute_timeline(current_day_of_14),
    )
