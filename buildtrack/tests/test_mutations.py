"""Tests for checklist toggles and status overrides against a mock store."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from buildtrack.core.errors import (
    InvalidChecklistLabelError,
    InvalidPhaseError,
    InvalidStatusError,
    InvalidTierError,
    ValidationError,
)
from buildtrack.core.phases.catalog import PlanTier
from buildtrack.core.phases.models import PhaseState, PhaseStatus
from buildtrack.core.phases.mutations import (
    UNSET,
    resolve_status_update,
    toggle_checklist_item,
    update_phase_status,
)
from buildtrack.core.utils import utcnow

NOW = datetime(2026, 5, 4, 12, 0)
EARLIER = datetime(2026, 5, 1, 8, 0)
LABEL = "Onboarding steps completed"


def _mock_store(current=None):
    """Mock store returning ``current`` and echoing upserted fields back."""
    store = MagicMock()
    store.get_phase_state.return_value = current

    def _upsert(client_id, phase_id, fields):
        base = current or PhaseState()
        return PhaseState(
            status=fields.get("status", base.status),
            started_at=fields.get("started_at", base.started_at),
            completed_at=fields.get("completed_at", base.completed_at),
            checklist=fields.get("checklist", base.checklist),
        )

    store.upsert_phase_state.side_effect = _upsert
    return store


class TestToggleTransition:

    def test_first_check_on_missing_state_starts_phase(self):
        store = _mock_store(current=None)

        result = toggle_checklist_item(store, "c1", "PHASE_1", LABEL, True, PlanTier.LAUNCH, now=NOW)

        assert result.status == PhaseStatus.IN_PROGRESS
        assert result.started_at == NOW
        store.upsert_phase_state.assert_called_once_with(
            "c1", "PHASE_1",
            {"checklist": {LABEL: True}, "status": PhaseStatus.IN_PROGRESS, "started_at": NOW},
        )

    def test_check_on_not_started_keeps_existing_started_at(self):
        store = _mock_store(PhaseState(status=PhaseStatus.NOT_STARTED, started_at=EARLIER))

        result = toggle_checklist_item(store, "c1", "PHASE_1", LABEL, True, PlanTier.LAUNCH, now=NOW)

        fields = store.upsert_phase_state.call_args[0][2]
        assert fields["status"] == PhaseStatus.IN_PROGRESS
        assert "started_at" not in fields
        assert result.started_at == EARLIER

    def test_uncheck_in_progress_leaves_status(self):
        current = PhaseState(status=PhaseStatus.IN_PROGRESS, started_at=EARLIER, checklist={LABEL: True})
        store = _mock_store(current)

        result = toggle_checklist_item(store, "c1", "PHASE_1", LABEL, False, PlanTier.LAUNCH, now=NOW)

        assert store.upsert_phase_state.call_args[0][2] == {"checklist": {LABEL: False}}
        assert result.status == PhaseStatus.IN_PROGRESS
        assert result.started_at == EARLIER

    def test_check_on_done_phase_does_not_reopen(self):
        store = _mock_store(PhaseState(status=PhaseStatus.DONE, started_at=EARLIER, completed_at=NOW))

        result = toggle_checklist_item(store, "c1", "PHASE_1", LABEL, True, PlanTier.LAUNCH, now=NOW)

        assert "status" not in store.upsert_phase_state.call_args[0][2]
        assert result.status == PhaseStatus.DONE

    def test_other_labels_preserved(self):
        current = PhaseState(
            status=PhaseStatus.IN_PROGRESS,
            checklist={LABEL: True, "Old label": True},
        )
        store = _mock_store(current)

        toggle_checklist_item(
            store, "c1", "PHASE_1", "Simple 14 day plan agreed", True, PlanTier.LAUNCH, now=NOW
        )

        assert store.upsert_phase_state.call_args[0][2]["checklist"] == {
            LABEL: True,
            "Old label": True,
            "Simple 14 day plan agreed": True,
        }

    def test_reads_with_lock(self):
        store = _mock_store()
        toggle_checklist_item(store, "c1", "PHASE_1", LABEL, True, "launch", now=NOW)
        store.get_phase_state.assert_called_once_with("c1", "PHASE_1", for_update=True)

    def test_confirmation_shape(self):
        store = _mock_store()
        result = toggle_checklist_item(store, "c1", "PHASE_1", LABEL, True, PlanTier.LAUNCH, now=NOW)
        assert result.to_dict() == {"phase_id": "PHASE_1", "checklist_label": LABEL, "is_done": True}


class TestToggleValidation:

    def test_unknown_label_writes_nothing(self):
        store = _mock_store()

        with pytest.raises(InvalidChecklistLabelError):
            toggle_checklist_item(store, "c1", "PHASE_1", "Not a real item", True, PlanTier.LAUNCH)

        store.upsert_phase_state.assert_not_called()
        store.get_phase_state.assert_not_called()

    def test_unknown_phase_writes_nothing(self):
        store = _mock_store()

        with pytest.raises(InvalidPhaseError):
            toggle_checklist_item(store, "c1", "PHASE_5", LABEL, True, PlanTier.LAUNCH)

        store.upsert_phase_state.assert_not_called()

    def test_unknown_tier(self):
        store = _mock_store()
        with pytest.raises(InvalidTierError):
            toggle_checklist_item(store, "c1", "PHASE_1", LABEL, True, "enterprise")
        store.upsert_phase_state.assert_not_called()

    def test_non_boolean_is_done(self):
        store = _mock_store()
        with pytest.raises(TypeError):
            toggle_checklist_item(store, "c1", "PHASE_1", LABEL, "yes", PlanTier.LAUNCH)
        store.upsert_phase_state.assert_not_called()


class TestResolveStatusUpdate:

    def test_in_progress_stamps_started(self):
        fields = resolve_status_update(None, status="IN_PROGRESS", now=NOW)
        assert fields == {"status": PhaseStatus.IN_PROGRESS, "started_at": NOW}

    def test_in_progress_keeps_existing_started(self):
        current = PhaseState(status=PhaseStatus.WAITING_ON_CLIENT, started_at=EARLIER)
        fields = resolve_status_update(current, status="IN_PROGRESS", now=NOW)
        assert fields == {"status": PhaseStatus.IN_PROGRESS}

    def test_done_stamps_completed(self):
        fields = resolve_status_update(None, status=PhaseStatus.DONE, now=NOW)
        assert fields["completed_at"] == NOW

    @pytest.mark.parametrize("status", ["DONE", "WAITING_ON_CLIENT"])
    def test_skipping_in_progress_leaves_started_unset(self, status):
        fields = resolve_status_update(PhaseState(), status=status, now=NOW)
        assert "started_at" not in fields

    def test_not_started_clears_timestamps(self):
        current = PhaseState(status=PhaseStatus.DONE, started_at=EARLIER, completed_at=NOW)
        fields = resolve_status_update(current, status="NOT_STARTED", now=NOW)
        assert fields == {"status": PhaseStatus.NOT_STARTED, "started_at": None, "completed_at": None}

    def test_not_started_with_explicit_timestamp(self):
        fields = resolve_status_update(None, status="NOT_STARTED", started_at=EARLIER, now=NOW)
        assert fields["started_at"] == EARLIER
        assert fields["completed_at"] is None

    def test_explicit_timestamps_win(self):
        fields = resolve_status_update(
            None, status="DONE", completed_at="2026-05-02T10:00:00Z", now=NOW
        )
        assert fields["completed_at"] == datetime(2026, 5, 2, 10, 0)

    def test_nothing_supplied(self):
        assert resolve_status_update(None, now=NOW) == {}


class TestUpdatePhaseStatus:

    def test_writes_resolved_fields(self):
        store = _mock_store(PhaseState(status=PhaseStatus.IN_PROGRESS, started_at=EARLIER))

        state = update_phase_status(store, "c1", "PHASE_3", status="DONE", tier=PlanTier.LAUNCH, now=NOW)

        store.upsert_phase_state.assert_called_once_with(
            "c1", "PHASE_3", {"status": PhaseStatus.DONE, "completed_at": NOW}
        )
        assert state.status == PhaseStatus.DONE
        assert state.started_at == EARLIER

    def test_invalid_status_before_read(self):
        store = _mock_store()
        with pytest.raises(InvalidStatusError):
            update_phase_status(store, "c1", "PHASE_1", status="FINISHED")
        store.get_phase_state.assert_not_called()

    def test_invalid_timestamp(self):
        store = _mock_store()
        with pytest.raises(ValidationError):
            update_phase_status(store, "c1", "PHASE_1", started_at="last tuesday")
        store.upsert_phase_state.assert_not_called()

    def test_invalid_phase_for_tier(self):
        store = _mock_store()
        with pytest.raises(InvalidPhaseError):
            update_phase_status(store, "c1", "PHASE_0", status="DONE", tier=PlanTier.GROWTH)

    def test_no_fields_no_write(self):
        current = PhaseState(status=PhaseStatus.IN_PROGRESS)
        store = _mock_store(current)

        assert update_phase_status(store, "c1", "PHASE_1", status=UNSET) is current
        store.upsert_phase_state.assert_not_called()


def test_default_clock_is_naive_utc():
    store = _mock_store(PhaseState(status=PhaseStatus.IN_PROGRESS, started_at=EARLIER))
    before = utcnow()

    state = update_phase_status(store, "c1", "PHASE_3", status="DONE", tier=PlanTier.LAUNCH)

    assert state.completed_at.tzinfo is None
    assert before <= state.completed_at <= utcnow()
