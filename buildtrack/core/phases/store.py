"""SQLAlchemy-backed phase-state store.

Wraps one session; the caller owns the transaction (see PhaseTracker,
which opens a session per operation). Reads used by mutations take a
row lock so concurrent toggles on the same (client, phase) serialize
instead of overwriting each other's checklist changes. Updates to
different phases or clients never contend.
"""

import logging
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import Client, ClientPhaseState
from .models import PhaseState, PhaseStatus

logger = logging.getLogger(__name__)

_WRITABLE_FIELDS = ("status", "started_at", "completed_at", "checklist")


def _as_uuid(value) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class PhaseStateStore:
    """Persistence contract for phase state, scoped to one session."""

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    # =========================================================================
    # Phase state
    # =========================================================================

    def _dialect_name(self) -> str:
        return self._session.get_bind().dialect.name

    def _query_row(self, client_id, phase_id: str, for_update: bool = False) -> Optional[ClientPhaseState]:
        query = self._session.query(ClientPhaseState).filter(
            ClientPhaseState.client_id == _as_uuid(client_id),
            ClientPhaseState.phase_id == phase_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def _insert_placeholder(self, client_id, phase_id: str) -> bool:
        """Insert a NOT_STARTED row so it can be locked.

        Returns False if a concurrent transaction inserted it first.
        """
        try:
            with self._session.begin_nested():
                self._session.add(ClientPhaseState(
                    client_id=_as_uuid(client_id),
                    phase_id=phase_id,
                    status=PhaseStatus.NOT_STARTED.value,
                    checklist={},
                ))
            return True
        except IntegrityError:
            logger.debug(f"Concurrent insert for client {client_id} phase {phase_id}, locking existing row")
            return False

    def get_phase_state(self, client_id, phase_id: str, for_update: bool = False) -> Optional[PhaseState]:
        """Read one phase state; None if it has never been written.

        With ``for_update`` the row is locked until the transaction ends.
        If no row exists yet a placeholder is inserted and locked, and
        None is still returned so callers see the phase as unstarted.
        """
        row = self._query_row(client_id, phase_id, for_update=for_update)
        if row is not None:
            return PhaseState.from_row(row)

        # SQLite has no row locks (dev/test only)
        if not for_update or self._dialect_name() == "sqlite":
            return None

        created = self._insert_placeholder(client_id, phase_id)
        row = self._query_row(client_id, phase_id, for_update=True)
        if created or row is None:
            return None
        return PhaseState.from_row(row)

    def get_phase_states(self, client_id) -> Dict[str, PhaseState]:
        """All recorded phase states for a client, keyed by phase_id."""
        rows = self._session.query(ClientPhaseState).filter(
            ClientPhaseState.client_id == _as_uuid(client_id)
        ).all()
        return {row.phase_id: PhaseState.from_row(row) for row in rows}

    def upsert_phase_state(self, client_id, phase_id: str, fields: Mapping[str, Any]) -> PhaseState:
        """Create or update the (client, phase) row with ``fields``.

        Only status, started_at, completed_at and checklist are written;
        the checklist is replaced as a whole.
        """
        unknown = set(fields) - set(_WRITABLE_FIELDS)
        if unknown:
            raise KeyError(f"Unknown phase state fields: {sorted(unknown)}")

        values = dict(fields)
        if "status" in values:
            values["status"] = PhaseStatus.parse(values["status"]).value
        if "checklist" in values:
            values["checklist"] = dict(values["checklist"] or {})

        row = self._query_row(client_id, phase_id)
        if row is None:
            row = ClientPhaseState(
                client_id=_as_uuid(client_id),
                phase_id=phase_id,
                status=PhaseStatus.NOT_STARTED.value,
                checklist={},
            )
            self._session.add(row)

        for name, value in values.items():
            setattr(row, name, value)

        self._session.flush()
        return PhaseState.from_row(row)

    def seed_phase_states(self, client_id, states: Mapping[str, PhaseState]) -> None:
        """Insert initial state rows for phases that have none."""
        existing = set(self.get_phase_states(client_id))
        for phase_id, state in states.items():
            if phase_id in existing:
                continue
            self._session.add(ClientPhaseState(
                client_id=_as_uuid(client_id),
                phase_id=phase_id,
                status=state.status.value,
                started_at=state.started_at,
                completed_at=state.completed_at,
                checklist=dict(state.checklist),
            ))
        self._session.flush()

    # =========================================================================
    # Clients
    # =========================================================================

    def find_client(self, user_id: Optional[str] = None, email: Optional[str] = None,
                    plan: Optional[str] = None) -> Optional[Client]:
        """Find a client by user id or email, newest first."""
        conditions = []
        if user_id:
            conditions.append(Client.user_id == user_id)
        if email:
            conditions.append(Client.email == email)
        if not conditions:
            return None

        query = self._session.query(Client).filter(or_(*conditions))
        if plan:
            query = query.filter(Client.plan == plan)
        return query.order_by(Client.created_at.desc()).first()

    def get_client(self, client_id) -> Optional[Client]:
        try:
            client_uuid = _as_uuid(client_id)
        except ValueError:
            return None
        return self._session.query(Client).filter(Client.client_id == client_uuid).first()
