"""Data contracts for phase tracking.

Kept as dataclasses (not ORM models) for transport between the store,
the merge engine and the progress aggregator.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import InvalidStatusError, ValidationError

logger = logging.getLogger(__name__)


class PhaseStatus(str, Enum):
    """Lifecycle status of a build phase."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_ON_CLIENT = "WAITING_ON_CLIENT"
    DONE = "DONE"

    @classmethod
    def parse(cls, value) -> "PhaseStatus":
        """Parse a status value, raising InvalidStatusError if unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise InvalidStatusError(value, valid=[s.value for s in cls])

    @classmethod
    def from_stored(cls, value) -> "PhaseStatus":
        """Parse a persisted status; unknown values read as NOT_STARTED."""
        if not value:
            return cls.NOT_STARTED
        try:
            return cls.parse(value)
        except InvalidStatusError:
            logger.warning(f"Unknown stored phase status {value!r}, reading as NOT_STARTED")
            return cls.NOT_STARTED


def parse_timestamp(value) -> Optional[datetime]:
    """Accept a datetime, an ISO-8601 string, or None."""
    if value is None or value == "":
        return None
    if not isinstance(value, datetime):
        try:
            value = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}")
    # Stored as naive UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class PhaseState:
    """Persisted per-(client, phase) state.

    ``checklist`` maps label -> done and may hold labels the catalog no
    longer defines; those are ignored on merge.
    """
    status: PhaseStatus = PhaseStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    checklist: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "PhaseState":
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PhaseState":
        """Build from a plain mapping (stored or legacy state blobs)."""
        if not data:
            return cls()
        return cls(
            status=PhaseStatus.from_stored(data.get("status")),
            started_at=parse_timestamp(data.get("started_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
            checklist=dict(data.get("checklist") or {}),
        )

    @classmethod
    def from_row(cls, row) -> "PhaseState":
        """Build from a ClientPhaseState ORM row."""
        return cls(
            status=PhaseStatus.from_stored(row.status),
            started_at=row.started_at,
            completed_at=row.completed_at,
            checklist=dict(row.checklist or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
            "checklist": dict(self.checklist),
        }


@dataclass(frozen=True)
class ChecklistItem:
    label: str
    is_done: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "is_done": self.is_done}


@dataclass
class MergedPhase:
    """Catalog definition merged with resolved state.

    This is the only phase shape the aggregator and API consume.
    """
    phase_id: str
    phase_number: int
    title: str
    subtitle: Optional[str]
    day_range: str
    status: PhaseStatus
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    checklist: List[ChecklistItem]
    links: List[Dict[str, Optional[str]]] = field(default_factory=list)

    @property
    def completed_items(self) -> int:
        return sum(1 for item in self.checklist if item.is_done)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase_id": self.phase_id,
            "phase_number": self.phase_number,
            "title": self.title,
            "subtitle": self.subtitle,
            "day_range": self.day_range,
            "status": self.status.value,
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
            "checklist": [item.to_dict() for item in self.checklist],
            "links": [dict(link) for link in self.links],
        }


@dataclass(frozen=True)
class ChecklistToggle:
    """Confirmation returned by a checklist toggle."""
    phase_id: str
    checklist_label: str
    is_done: bool
    status: PhaseStatus
    started_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase_id": self.phase_id,
            "checklist_label": self.checklist_label,
            "is_done": self.is_done,
        }
