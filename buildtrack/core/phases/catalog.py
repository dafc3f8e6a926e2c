"""Phase catalog for the 14-day build.

Phase titles, subtitles, day ranges and checklist labels are fixed per
plan tier and defined here. Only status, timestamps and checklist
completion are persisted (see ClientPhaseState). A checklist label is its
own identity; renaming one here orphans any persisted value for the old
label, which the merge then ignores.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from ..errors import InvalidChecklistLabelError, InvalidPhaseError, InvalidTierError
from .models import PhaseState, PhaseStatus

logger = logging.getLogger(__name__)


class PlanTier(str, Enum):
    """The two service packages a client can be enrolled in."""
    LAUNCH = "LAUNCH"
    GROWTH = "GROWTH"

    @property
    def display_name(self) -> str:
        return _TIER_DISPLAY_NAMES[self]


_TIER_DISPLAY_NAMES = {
    PlanTier.LAUNCH: "Launch Kit",
    PlanTier.GROWTH: "Growth Kit",
}

# Accepted spellings after trim + upper-case
_TIER_ALIASES = {
    "LAUNCH": PlanTier.LAUNCH,
    "LAUNCH KIT": PlanTier.LAUNCH,
    "LAUNCH_KIT": PlanTier.LAUNCH,
    "GROWTH": PlanTier.GROWTH,
    "GROWTH KIT": PlanTier.GROWTH,
    "GROWTH_KIT": PlanTier.GROWTH,
}


def normalize_tier(value: Union[PlanTier, str, None]) -> PlanTier:
    """Normalize a plan tier from any caller-supplied spelling.

    Raises:
        InvalidTierError: if the value is not a recognized tier
    """
    if isinstance(value, PlanTier):
        return value
    if isinstance(value, str):
        tier = _TIER_ALIASES.get(" ".join(value.split()).upper())
        if tier is not None:
            return tier
    raise InvalidTierError(value)


def parse_optional_tier(value: Union[PlanTier, str, None]) -> Optional[PlanTier]:
    """Like normalize_tier, but None and empty strings pass through as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return normalize_tier(value)


@dataclass(frozen=True)
class PhaseLink:
    label: str
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"label": self.label, "url": self.url}


@dataclass(frozen=True)
class PhaseDefinition:
    """One compiled-in phase of the build."""
    phase_id: str
    phase_number: int
    title: str
    subtitle: Optional[str]
    day_range: str
    checklist_labels: Tuple[str, ...]
    links: Tuple[PhaseLink, ...] = field(default_factory=tuple)

    def has_label(self, label: str) -> bool:
        return label in self.checklist_labels


# =============================================================================
# Launch Kit
# =============================================================================

LAUNCH_KIT_PHASES: Tuple[PhaseDefinition, ...] = (
    PhaseDefinition(
        phase_id="PHASE_1",
        phase_number=1,
        title="Inputs & clarity",
        subtitle="Lock the message and plan.",
        day_range="Days 0-2",
        checklist_labels=(
            "Onboarding steps completed",
            "Brand / strategy call completed",
            "Simple 14 day plan agreed",
        ),
    ),
    PhaseDefinition(
        phase_id="PHASE_2",
        phase_number=2,
        title="Words that sell",
        subtitle="We write your 3 pages.",
        day_range="Days 3-5",
        checklist_labels=(
            "Draft homepage copy ready",
            "Draft offer / services page ready",
            "Draft contact / about copy ready",
            "You reviewed and approved copy",
        ),
        links=(PhaseLink("View copy doc"),),
    ),
    PhaseDefinition(
        phase_id="PHASE_3",
        phase_number=3,
        title="Design & build",
        subtitle="We turn copy into a 3 page site.",
        day_range="Days 6-10",
        checklist_labels=(
            "Site layout built for all 3 pages",
            "Mobile checks done",
            "Testimonials and proof added",
            "Staging link shared with you",
        ),
        links=(PhaseLink("View staging site"),),
    ),
    PhaseDefinition(
        phase_id="PHASE_4",
        phase_number=4,
        title="Test & launch",
        subtitle="We connect domain, test and go live.",
        day_range="Days 11-14",
        checklist_labels=(
            "Forms tested",
            "Domain connected",
            "Final tweaks applied",
            "Loom walkthrough recorded and shared",
        ),
        links=(PhaseLink("View live site"), PhaseLink("Watch Loom walkthrough")),
    ),
)


# =============================================================================
# Growth Kit
# =============================================================================

GROWTH_KIT_PHASES: Tuple[PhaseDefinition, ...] = (
    PhaseDefinition(
        phase_id="PHASE_1",
        phase_number=1,
        title="Strategy locked in",
        subtitle="Offer, goal and funnel map agreed.",
        day_range="Days 0-2",
        checklist_labels=(
            "Onboarding complete",
            "Strategy / funnel call done",
            "Main offer + 90 day goal confirmed",
            "Simple funnel map agreed",
        ),
    ),
    PhaseDefinition(
        phase_id="PHASE_2",
        phase_number=2,
        title="Copy & email engine",
        subtitle="We write your site copy and 5 emails.",
        day_range="Days 3-5",
        checklist_labels=(
            "Draft website copy ready",
            "Draft 5-email nurture sequence ready",
            "You reviewed and approved copy",
            "Any changes locked in",
        ),
        links=(PhaseLink("View website copy"), PhaseLink("View email sequence")),
    ),
    PhaseDefinition(
        phase_id="PHASE_3",
        phase_number=3,
        title="Build the funnel",
        subtitle="Pages, lead magnet and blog hub built.",
        day_range="Days 6-10",
        checklist_labels=(
            "4-6 page site built on staging",
            "Lead magnet page + thank you page built",
            "Opt-in forms wired to your email platform",
            "Blog hub and 1-2 starter posts set up",
            "Staging link shared",
        ),
        links=(PhaseLink("View staging funnel"),),
    ),
    PhaseDefinition(
        phase_id="PHASE_4",
        phase_number=4,
        title="Test & handover",
        subtitle="We test the full journey and go live.",
        day_range="Days 11-14",
        checklist_labels=(
            "Funnel tested from first visit to booked call",
            "Domain connected",
            "Tracking checked (Analytics / pixels)",
            "5-email sequence switched on",
            "Loom walkthrough recorded and shared",
        ),
        links=(PhaseLink("View live funnel"), PhaseLink("Watch Loom walkthrough")),
    ),
)


_CATALOG: Dict[PlanTier, Tuple[PhaseDefinition, ...]] = {
    PlanTier.LAUNCH: LAUNCH_KIT_PHASES,
    PlanTier.GROWTH: GROWTH_KIT_PHASES,
}


# =============================================================================
# Lookups
# =============================================================================

def get_phase_structure(tier: Union[PlanTier, str]) -> List[PhaseDefinition]:
    """Return the ordered phase definitions for a plan tier.

    Raises:
        InvalidTierError: if ``tier`` is not LAUNCH or GROWTH
    """
    return list(_CATALOG[normalize_tier(tier)])


def get_phase_definition(tier: Union[PlanTier, str], phase_id: str) -> PhaseDefinition:
    """Look up one phase by id.

    Raises:
        InvalidTierError: unknown tier
        InvalidPhaseError: phase id not in the tier's catalog
    """
    plan = normalize_tier(tier)
    for phase in _CATALOG[plan]:
        if phase.phase_id == phase_id:
            return phase
    raise InvalidPhaseError(phase_id, plan.value)


def validate_checklist_label(tier: Union[PlanTier, str], phase_id: str, label: str) -> PhaseDefinition:
    """Check that ``label`` is defined for the phase; return the phase.

    Raises:
        InvalidPhaseError, InvalidChecklistLabelError
    """
    phase = get_phase_definition(tier, phase_id)
    if not phase.has_label(label):
        raise InvalidChecklistLabelError(label, phase_id)
    return phase


def initial_phases_state(tier: Union[PlanTier, str]) -> Dict[str, PhaseState]:
    """All-NOT_STARTED state for a tier, with every checklist label False."""
    return {
        phase.phase_id: PhaseState(
            status=PhaseStatus.NOT_STARTED,
            checklist={label: False for label in phase.checklist_labels},
        )
        for phase in get_phase_structure(tier)
    }
