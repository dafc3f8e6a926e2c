"""Phase Tracker service.

Opens one transaction per operation and wires the catalog, store,
merge engine, aggregator and mutation handler together for the API
layer. Client-facing methods take a resolved ClientIdentity; admin
methods address clients by id.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..auth import ClientIdentity
from ..clients.client_manager import client_to_dict
from ..constants import DEFAULT_PAGE_LIMIT
from ..db import DatabaseManager
from ..db.models import Client, QuizSubmission
from ..errors import BuildTrackError, ClientNotFoundError, StorageError
from .catalog import PlanTier, get_phase_structure, parse_optional_tier
from .merge import merge_phase_structure
from .models import ChecklistToggle, MergedPhase, PhaseState, PhaseStatus, isoformat
from .mutations import UNSET, toggle_checklist_item, update_phase_status
from .progress import ProgressSummary, compute_progress
from .store import PhaseStateStore

logger = logging.getLogger(__name__)


class PhaseTracker:
    """Reads and mutates client build phases with database persistence."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        logger.info("PhaseTracker initialized")

    @contextmanager
    def _store(self, action: str) -> Iterator[PhaseStateStore]:
        """Transactional store; storage failures surface as StorageError."""
        try:
            with self.db.get_session() as session:
                yield PhaseStateStore(session)
        except BuildTrackError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Failed to {action}") from e

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_client(store: PhaseStateStore, identity: ClientIdentity) -> Client:
        client = store.find_client(user_id=identity.user_id, email=identity.email)
        if client is None:
            raise ClientNotFoundError(f"No project found for {identity.email}")
        return client

    @staticmethod
    def _require_client_by_id(store: PhaseStateStore, client_id: str) -> Client:
        client = store.get_client(client_id)
        if client is None:
            raise ClientNotFoundError(f"Project not found: {client_id}")
        return client

    @staticmethod
    def _merge_for_client(store: PhaseStateStore, client: Client) -> List[MergedPhase]:
        states = store.get_phase_states(client.client_id)
        return merge_phase_structure(get_phase_structure(client.plan), states)

    @staticmethod
    def _progress_for_client(client: Client, phases: List[MergedPhase]) -> ProgressSummary:
        return compute_progress(
            phases,
            current_day_of_14=client.current_day_of_14,
            next_from_us=client.next_from_us,
            next_from_you=client.next_from_you,
        )

    # =========================================================================
    # Client-facing reads
    # =========================================================================

    def read_dashboard(self, identity: ClientIdentity) -> Dict[str, Any]:
        """Merged phases plus progress metrics for the caller's project.

        Raises:
            ClientNotFoundError: no client record for the identity
        """
        with self._store("read dashboard") as store:
            client = self._require_client(store, identity)
            states = store.get_phase_states(client.client_id)
            phases = merge_phase_structure(get_phase_structure(client.plan), states)
            progress = self._progress_for_client(client, phases)

            project = client_to_dict(client)
            project["phases_state"] = (
                {phase_id: state.to_dict() for phase_id, state in states.items()} if states else None
            )
            project["phases"] = [p.to_dict() for p in phases]

            logger.debug(f"Dashboard for client {client.client_id}: {len(phases)} phases")
            return {
                "project": project,
                "phases": project["phases"],
                "progress": progress.to_dict(),
            }

    def preview_dashboard(self, identity: ClientIdentity) -> Dict[str, Any]:
        """Unstarted phases for someone who has not finished onboarding.

        The tier comes from the newest quiz submission, defaulting to LAUNCH.
        """
        with self._store("preview dashboard") as store:
            submission = store.session.query(QuizSubmission).filter(
                QuizSubmission.email == identity.email
            ).order_by(QuizSubmission.created_at.desc()).first()

        tier = PlanTier.LAUNCH
        if submission is not None and submission.preferred_kit:
            tier = parse_optional_tier(submission.preferred_kit) or PlanTier.LAUNCH

        phases = merge_phase_structure(get_phase_structure(tier), None)
        project = {
            "id": None,
            "project_id": None,
            "user_id": identity.user_id,
            "email": identity.email,
            "kit_type": tier.value,
            "current_day_of_14": None,
            "next_from_us": None,
            "next_from_you": None,
            "onboarding_finished": False,
            "onboarding_percent": 0,
            "phases_state": None,
            "created_at": None,
            "updated_at": None,
            "phases": [p.to_dict() for p in phases],
        }
        return {
            "project": project,
            "phases": project["phases"],
            "progress": compute_progress(phases).to_dict(),
        }

    def get_progress(self, identity: ClientIdentity) -> ProgressSummary:
        """Progress metrics only.

        Raises:
            ClientNotFoundError: no client record for the identity
        """
        with self._store("compute progress") as store:
            client = self._require_client(store, identity)
            phases = self._merge_for_client(store, client)
            return self._progress_for_client(client, phases)

    # =========================================================================
    # Client-facing writes
    # =========================================================================

    def toggle_checklist_item(
        self,
        identity: ClientIdentity,
        phase_id: str,
        checklist_label: str,
        is_done: bool,
    ) -> ChecklistToggle:
        """Toggle one checklist item on the caller's own project."""
        with self._store("toggle checklist item") as store:
            client = self._require_client(store, identity)
            result = toggle_checklist_item(
                store,
                client.client_id,
                phase_id,
                checklist_label,
                is_done,
                tier=client.plan,
            )
            logger.info(
                f"Checklist '{checklist_label}' in {phase_id} set to {is_done} "
                f"for client {client.client_id}"
            )
            return result

    # =========================================================================
    # Admin
    # =========================================================================

    def get_client_phases(self, client_id: str) -> List[MergedPhase]:
        with self._store("get client phases") as store:
            client = self._require_client_by_id(store, client_id)
            return self._merge_for_client(store, client)

    def get_client_progress(self, client_id: str) -> ProgressSummary:
        with self._store("compute client progress") as store:
            client = self._require_client_by_id(store, client_id)
            return self._progress_for_client(client, self._merge_for_client(store, client))

    def update_client_phase(
        self,
        client_id: str,
        phase_id: str,
        status: Any = UNSET,
        started_at: Any = UNSET,
        completed_at: Any = UNSET,
    ) -> Dict[str, Any]:
        """Admin status/timestamp override for one phase."""
        with self._store("update phase") as store:
            client = self._require_client_by_id(store, client_id)
            state = update_phase_status(
                store,
                client.client_id,
                phase_id,
                status=status,
                started_at=started_at,
                completed_at=completed_at,
                tier=client.plan,
            )
            return {
                "phase_id": phase_id,
                "status": state.status.value,
                "started_at": isoformat(state.started_at),
                "completed_at": isoformat(state.completed_at),
            }

    def toggle_client_checklist_item(
        self,
        client_id: str,
        phase_id: str,
        checklist_label: str,
        is_done: bool,
    ) -> ChecklistToggle:
        """Admin checklist toggle; validated exactly like the client path."""
        with self._store("toggle checklist item") as store:
            client = self._require_client_by_id(store, client_id)
            return toggle_checklist_item(
                store,
                client.client_id,
                phase_id,
                checklist_label,
                is_done,
                tier=client.plan,
            )

    def list_project_phases(
        self,
        kit_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """Every client's merged phases, newest client first.

        With ``status``, each project's phases are filtered to that status
        and projects left with no phases are dropped from the page.
        """
        tier = parse_optional_tier(kit_type)
        status_filter = PhaseStatus.parse(status) if status else None

        with self._store("list project phases") as store:
            query = store.session.query(Client)
            if tier is not None:
                query = query.filter(Client.plan == tier.value)

            total = query.count()
            clients = (
                query.options(selectinload(Client.phase_states))
                .order_by(Client.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )

            projects = []
            for client in clients:
                states = {row.phase_id: PhaseState.from_row(row) for row in client.phase_states}
                phases = merge_phase_structure(get_phase_structure(client.plan), states)
                if status_filter is not None:
                    phases = [p for p in phases if p.status == status_filter]
                    if not phases:
                        continue

                project = client_to_dict(client)
                project["phases"] = [p.to_dict() for p in phases]
                projects.append(project)

        return {
            "projects": projects,
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        }
