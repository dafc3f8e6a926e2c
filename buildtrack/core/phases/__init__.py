"""Build phase tracking.

Pure building blocks (catalog, merge, progress, mutations) plus the
SQLAlchemy store. The session-owning service lives in
``buildtrack.core.phases.tracker``.
"""

from .catalog import (
    PlanTier,
    PhaseDefinition,
    PhaseLink,
    normalize_tier,
    parse_optional_tier,
    get_phase_structure,
    get_phase_definition,
    validate_checklist_label,
    initial_phases_state,
)
from .models import (
    PhaseStatus,
    PhaseState,
    ChecklistItem,
    MergedPhase,
    ChecklistToggle,
    parse_timestamp,
)
from .merge import merge_phase, merge_phase_structure
from .progress import ProgressSummary, compute_progress, select_current_phase
from .mutations import UNSET, toggle_checklist_item, update_phase_status
from .store import PhaseStateStore

__all__ = [
    # Catalog
    "PlanTier",
    "PhaseDefinition",
    "PhaseLink",
    "normalize_tier",
    "parse_optional_tier",
    "get_phase_structure",
    "get_phase_definition",
    "validate_checklist_label",
    "initial_phases_state",
    # State
    "PhaseStatus",
    "PhaseState",
    "ChecklistItem",
    "MergedPhase",
    "ChecklistToggle",
    "parse_timestamp",
    # Engines
    "merge_phase",
    "merge_phase_structure",
    "ProgressSummary",
    "compute_progress",
    "select_current_phase",
    "UNSET",
    "toggle_checklist_item",
    "update_phase_status",
    "PhaseStateStore",
]
