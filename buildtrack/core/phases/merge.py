"""Merge the phase catalog with persisted per-client state.

Output order always follows the catalog: phases in catalog order, and
each checklist in the phase's label order. State entries for unknown
phase ids or labels are ignored, so catalog edits never break reads.
"""

from typing import Any, Iterable, List, Mapping, Optional, Union

from .catalog import PhaseDefinition
from .models import ChecklistItem, MergedPhase, PhaseState, PhaseStatus

StateValue = Union[PhaseState, Mapping[str, Any], None]


def _resolve_state(value: StateValue) -> PhaseState:
    if value is None:
        return PhaseState.default()
    if isinstance(value, PhaseState):
        return value
    return PhaseState.from_dict(value)


def merge_phase(definition: PhaseDefinition, state: StateValue = None) -> MergedPhase:
    """Merge one phase definition with its (possibly missing) state."""
    resolved = _resolve_state(state)
    done = resolved.checklist or {}

    return MergedPhase(
        phase_id=definition.phase_id,
        phase_number=definition.phase_number,
        title=definition.title,
        subtitle=definition.subtitle,
        day_range=definition.day_range,
        status=resolved.status or PhaseStatus.NOT_STARTED,
        started_at=resolved.started_at,
        completed_at=resolved.completed_at,
        checklist=[
            ChecklistItem(label=label, is_done=bool(done.get(label, False)))
            for label in definition.checklist_labels
        ],
        links=[link.to_dict() for link in definition.links],
    )


def merge_phase_structure(
    catalog: Iterable[PhaseDefinition],
    state: Optional[Mapping[str, StateValue]] = None,
) -> List[MergedPhase]:
    """Combine catalog definitions with a phase_id -> state mapping.

    Args:
        catalog: Phase definitions in display order
        state: Persisted state keyed by phase_id; None or empty means
            nothing has been recorded yet

    Returns:
        One MergedPhase per catalog entry, in catalog order
    """
    state = state or {}
    return [merge_phase(definition, state.get(definition.phase_id)) for definition in catalog]
