"""Tests for the phase catalog and tier normalization."""

import pytest

from buildtrack.core.errors import (
    InvalidChecklistLabelError,
    InvalidPhaseError,
    InvalidTierError,
)
from buildtrack.core.phases.catalog import (
    GROWTH_KIT_PHASES,
    LAUNCH_KIT_PHASES,
    PlanTier,
    get_phase_definition,
    get_phase_structure,
    initial_phases_state,
    normalize_tier,
    parse_optional_tier,
    validate_checklist_label,
)
from buildtrack.core.phases.models import PhaseStatus


class TestNormalizeTier:

    @pytest.mark.parametrize("value", ["LAUNCH", "launch", " Launch Kit ", "launch_kit"])
    def test_launch_spellings(self, value):
        assert normalize_tier(value) == PlanTier.LAUNCH

    @pytest.mark.parametrize("value", ["GROWTH", "growth", " growth kit ", "Growth   Kit"])
    def test_growth_spellings(self, value):
        assert normalize_tier(value) == PlanTier.GROWTH

    def test_enum_passes_through(self):
        assert normalize_tier(PlanTier.GROWTH) is PlanTier.GROWTH

    @pytest.mark.parametrize("value", ["pro", "", None, 3, "launchpad"])
    def test_unknown_rejected(self, value):
        with pytest.raises(InvalidTierError):
            normalize_tier(value)

    def test_optional_tier_allows_blank(self):
        assert parse_optional_tier(None) is None
        assert parse_optional_tier("  ") is None
        assert parse_optional_tier("growth") == PlanTier.GROWTH


class TestPhaseStructure:

    def test_four_phases_per_tier_in_order(self):
        for tier in PlanTier:
            phases = get_phase_structure(tier)
            assert [p.phase_id for p in phases] == ["PHASE_1", "PHASE_2", "PHASE_3", "PHASE_4"]
            assert [p.phase_number for p in phases] == [1, 2, 3, 4]

    def test_label_counts(self):
        assert [len(p.checklist_labels) for p in LAUNCH_KIT_PHASES] == [3, 4, 4, 4]
        assert [len(p.checklist_labels) for p in GROWTH_KIT_PHASES] == [4, 4, 5, 5]

    def test_labels_unique_within_phase(self):
        for phase in LAUNCH_KIT_PHASES + GROWTH_KIT_PHASES:
            assert len(set(phase.checklist_labels)) == len(phase.checklist_labels)

    def test_accepts_tier_string(self):
        assert get_phase_structure("Growth Kit")[0].title == "Strategy locked in"

    def test_unknown_phase(self):
        with pytest.raises(InvalidPhaseError, match="Invalid phase_id: PHASE_9"):
            get_phase_definition(PlanTier.LAUNCH, "PHASE_9")


class TestValidateChecklistLabel:

    def test_known_label(self):
        phase = validate_checklist_label(PlanTier.LAUNCH, "PHASE_1", "Onboarding steps completed")
        assert phase.phase_id == "PHASE_1"

    def test_label_from_other_tier_rejected(self):
        # Growth's first label differs from Launch's
        with pytest.raises(InvalidChecklistLabelError):
            validate_checklist_label(PlanTier.LAUNCH, "PHASE_1", "Onboarding complete")

    def test_label_from_other_phase_rejected(self):
        with pytest.raises(InvalidChecklistLabelError, match="for phase PHASE_2"):
            validate_checklist_label(PlanTier.LAUNCH, "PHASE_2", "Forms tested")


def test_initial_state_all_unchecked():
    state = initial_phases_state(PlanTier.GROWTH)
    assert set(state) == {"PHASE_1", "PHASE_2", "PHASE_3", "PHASE_4"}
    for phase in GROWTH_KIT_PHASES:
        entry = state[phase.phase_id]
        assert entry.status == PhaseStatus.NOT_STARTED
        assert entry.checklist == {label: False for label in phase.checklist_labels}
