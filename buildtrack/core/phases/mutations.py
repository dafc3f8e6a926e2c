"""Phase state mutations: checklist toggles and status overrides.

Both operations validate against the catalog before touching the store
and write the resulting record with a single upsert, so a status side
effect can never be committed without its checklist change (or the
reverse). The store is passed in; see store.PhaseStateStore for the
SQLAlchemy implementation and its locking.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from .catalog import PlanTier, get_phase_definition, validate_checklist_label
from ..utils import utcnow
from .models import ChecklistToggle, PhaseState, PhaseStatus, parse_timestamp

logger = logging.getLogger(__name__)


class _Unset:
    """Sentinel for 'field not supplied' (distinct from an explicit None)."""

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET: Any = _Unset()


# =============================================================================
# Checklist toggle
# =============================================================================

def toggle_checklist_item(
    store,
    client_id: str,
    phase_id: str,
    checklist_label: str,
    is_done: bool,
    tier: Union[PlanTier, str],
    now: Optional[datetime] = None,
) -> ChecklistToggle:
    """Set one checklist item and apply the NOT_STARTED -> IN_PROGRESS rule.

    Args:
        store: Phase-state store (get_phase_state / upsert_phase_state)
        client_id: Client whose phase is being changed
        phase_id: Catalog phase id, e.g. "PHASE_1"
        checklist_label: Label exactly as defined in the catalog
        is_done: New value for the item
        tier: The client's plan tier
        now: Clock override for tests

    Returns:
        ChecklistToggle confirming the applied change

    Raises:
        InvalidTierError, InvalidPhaseError, InvalidChecklistLabelError:
            before any store access
    """
    if not isinstance(is_done, bool):
        raise TypeError("is_done must be a boolean")

    validate_checklist_label(tier, phase_id, checklist_label)

    current = store.get_phase_state(client_id, phase_id, for_update=True)

    checklist = dict(current.checklist) if current else {}
    checklist[checklist_label] = is_done

    fields: Dict[str, Any] = {"checklist": checklist}

    starts_phase = is_done and (current is None or current.status == PhaseStatus.NOT_STARTED)
    if starts_phase:
        fields["status"] = PhaseStatus.IN_PROGRESS
        if current is None or current.started_at is None:
            fields["started_at"] = now or utcnow()

    updated = store.upsert_phase_state(client_id, phase_id, fields)

    if starts_phase:
        logger.info(f"Phase {phase_id} for client {client_id} moved to IN_PROGRESS by checklist toggle")

    return ChecklistToggle(
        phase_id=phase_id,
        checklist_label=checklist_label,
        is_done=is_done,
        status=updated.status,
        started_at=updated.started_at,
    )


# =============================================================================
# Status override
# =============================================================================

def resolve_status_update(
    current: Optional[PhaseState],
    status: Any = UNSET,
    started_at: Any = UNSET,
    completed_at: Any = UNSET,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Compute the fields a status override writes.

    - entering IN_PROGRESS without started_at stamps now, unless already set
    - entering DONE without completed_at stamps now
    - entering NOT_STARTED clears both timestamps
    - explicitly supplied timestamps (including None) always win
    """
    fields: Dict[str, Any] = {}
    now = now or utcnow()

    if status is not UNSET:
        new_status = PhaseStatus.parse(status)
        fields["status"] = new_status

        if new_status == PhaseStatus.IN_PROGRESS and not started_at:
            if current is None or current.started_at is None:
                fields["started_at"] = now
        elif new_status == PhaseStatus.DONE and not completed_at:
            fields["completed_at"] = now
        elif new_status == PhaseStatus.NOT_STARTED:
            fields["started_at"] = None
            fields["completed_at"] = None

    if started_at is not UNSET:
        fields["started_at"] = parse_timestamp(started_at)
    if completed_at is not UNSET:
        fields["completed_at"] = parse_timestamp(completed_at)

    return fields


def update_phase_status(
    store,
    client_id: str,
    phase_id: str,
    status: Any = UNSET,
    started_at: Any = UNSET,
    completed_at: Any = UNSET,
    tier: Union[PlanTier, str, None] = None,
    now: Optional[datetime] = None,
) -> PhaseState:
    """Override a phase's status and/or timestamps.

    When ``tier`` is given, ``phase_id`` is validated against its catalog.
    Status and timestamps are validated before the store is read.

    Returns:
        The PhaseState as written
    """
    if tier is not None:
        get_phase_definition(tier, phase_id)

    if status is not UNSET:
        status = PhaseStatus.parse(status)
    if started_at is not UNSET:
        started_at = parse_timestamp(started_at)
    if completed_at is not UNSET:
        completed_at = parse_timestamp(completed_at)

    current = store.get_phase_state(client_id, phase_id, for_update=True)
    fields = resolve_status_update(current, status, started_at, completed_at, now=now)

    if not fields:
        return current or PhaseState.default()

    updated = store.upsert_phase_state(client_id, phase_id, fields)
    logger.info(f"Phase {phase_id} for client {client_id} updated: status={updated.status.value}")
    return updated
