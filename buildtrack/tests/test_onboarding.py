"""Tests for onboarding steps, the draft buffer and the onboarding service."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from buildtrack.core.db.models import Client, ClientPhaseState, OnboardingStep
from buildtrack.core.errors import InvalidTierError, StorageError, ValidationError
from buildtrack.core.onboarding import (
    GROWTH_KIT_STEPS,
    LAUNCH_KIT_STEPS,
    OnboardingDraft,
    OnboardingService,
    StepProgress,
    StepStatus,
    evaluate_step,
    get_step_definition,
    onboarding_percent,
)
from buildtrack.core.quiz import QuizManager

from conftest import quiz_payload, step_payloads

NOW = datetime(2026, 6, 1, 9, 0)


def _mock_db():
    """Create a mock DatabaseManager."""
    db = MagicMock()
    session = MagicMock()
    db.get_session.return_value.__enter__ = MagicMock(return_value=session)
    db.get_session.return_value.__exit__ = MagicMock(return_value=False)
    return db, session


# ── Step catalog ──────────────────────────────────────────────────────────


class TestStepCatalog:

    def test_thresholds(self):
        assert [(s.required_to_continue, s.required_fields_total) for s in LAUNCH_KIT_STEPS] == [
            (6, 7), (6, 7), (2, 3),
        ]
        assert [(s.required_to_continue, s.required_fields_total) for s in GROWTH_KIT_STEPS] == [
            (10, 12), (7, 9), (10, 13),
        ]

    def test_unknown_step(self):
        with pytest.raises(ValidationError):
            get_step_definition("LAUNCH", 4)


class TestEvaluateStep:

    def test_threshold_met_is_done(self):
        step = evaluate_step(get_step_definition("GROWTH", 1), 10, now=NOW)
        assert step.status == StepStatus.DONE
        assert step.completed_at == NOW
        assert step.title == "Snapshot and main offer"

    def test_below_threshold_in_progress(self):
        step = evaluate_step(get_step_definition("GROWTH", 1), 9, now=NOW)
        assert step.status == StepStatus.IN_PROGRESS
        assert step.completed_at is None

    def test_count_clamped_to_total(self):
        step = evaluate_step(get_step_definition("LAUNCH", 3), 8, now=NOW)
        assert step.required_fields_completed == 3


class TestOnboardingPercent:

    def test_sums_fields_across_steps(self):
        steps = [StepProgress.from_dict(p) for p in step_payloads(((7, 6), (7, 6), (3, 2)))]
        # 14 of 17
        assert onboarding_percent(steps) == 82

    def test_empty(self):
        assert onboarding_percent([]) == 0


class TestStepProgressParsing:

    def test_completed_above_total_rejected(self):
        with pytest.raises(ValidationError):
            StepProgress.from_dict({"step_number": 1, "required_fields_total": 3, "required_fields_completed": 4})

    def test_missing_step_number(self):
        with pytest.raises(ValidationError):
            StepProgress.from_dict({"required_fields_total": 3})

    def test_bad_status(self):
        with pytest.raises(ValidationError):
            StepProgress.from_dict({"step_number": 1, "status": "SKIPPED"})


# ── Draft ─────────────────────────────────────────────────────────────────


class TestOnboardingDraft:

    def test_complete_after_all_thresholds(self):
        draft = OnboardingDraft("Jane@Example.com", "launch kit")
        draft.record_step(1, 6)
        draft.record_step(2, 7)
        assert not draft.is_complete()

        draft.record_step(3, 2)
        assert draft.is_complete()
        assert draft.percent == 88  # 15 of 17

    def test_rerecord_keeps_started_at(self):
        draft = OnboardingDraft("jane@example.com", "LAUNCH")
        first = draft.record_step(1, 2, now=NOW)
        second = draft.record_step(1, 7, now=datetime(2026, 6, 2))
        assert second.started_at == first.started_at == NOW

    def test_commit_incomplete_does_not_call_service(self):
        draft = OnboardingDraft("jane@example.com", "LAUNCH")
        draft.record_step(1, 7)
        service = MagicMock()

        with pytest.raises(ValidationError, match=r"\[2, 3\]"):
            draft.commit(service)

        service.complete_onboarding.assert_not_called()

    def test_commit_hands_steps_to_service(self):
        draft = OnboardingDraft("jane@example.com", "GROWTH")
        draft.record_step(1, 12)
        draft.record_step(2, 9)
        draft.record_step(3, 10)
        service = MagicMock()

        draft.commit(service)

        email, kit, steps = service.complete_onboarding.call_args[0]
        assert (email, kit) == ("jane@example.com", "GROWTH")
        assert [s.step_number for s in steps] == [1, 2, 3]

    def test_rejects_unknown_tier(self):
        with pytest.raises(InvalidTierError):
            OnboardingDraft("jane@example.com", "pro")


# ── Service ───────────────────────────────────────────────────────────────


class TestCompleteOnboardingValidation:

    def test_requires_three_steps(self):
        db, session = _mock_db()
        svc = OnboardingService(db)

        with pytest.raises(ValidationError, match="Exactly 3 steps"):
            svc.complete_onboarding("jane@example.com", "LAUNCH", step_payloads()[:2])

        db.get_session.assert_not_called()

    def test_duplicate_step_numbers(self):
        db, _ = _mock_db()
        steps = step_payloads()
        steps[2]["step_number"] = 2

        with pytest.raises(ValidationError, match="no duplicates"):
            OnboardingService(db).complete_onboarding("jane@example.com", "LAUNCH", steps)

    def test_invalid_tier(self):
        db, _ = _mock_db()
        with pytest.raises(InvalidTierError):
            OnboardingService(db).complete_onboarding("jane@example.com", "basic", step_payloads())

    def test_missing_email(self):
        db, _ = _mock_db()
        with pytest.raises(ValidationError):
            OnboardingService(db).complete_onboarding("", "LAUNCH", step_payloads())


class TestCompleteOnboardingPersistence:

    def test_creates_client_steps_and_phase_state(self, db_manager):
        QuizManager(db_manager).create_submission(quiz_payload())
        svc = OnboardingService(db_manager)

        result = svc.complete_onboarding("Jane@Example.com", "launch", step_payloads())

        project = result["project"]
        assert project["kit_type"] == "LAUNCH"
        assert project["name"] == "Jane Doe"
        assert project["onboarding_percent"] == 94  # 16 of 17
        assert project["onboarding_finished"] is True
        assert [s["step_number"] for s in result["steps"]] == [1, 2, 3]
        assert result["steps"][0]["title"] == "Tell us who you are"

        with db_manager.get_session() as session:
            assert session.query(Client).count() == 1
            assert session.query(OnboardingStep).count() == 3
            assert session.query(ClientPhaseState).count() == 4

    def test_second_completion_updates_in_place(self, db_manager):
        svc = OnboardingService(db_manager)
        svc.complete_onboarding("jane@example.com", "LAUNCH", step_payloads(((7, 6), (7, 6), (3, 2))))

        result = svc.complete_onboarding("jane@example.com", "LAUNCH", step_payloads(((7, 7), (7, 7), (3, 3))))

        assert result["project"]["onboarding_percent"] == 100
        with db_manager.get_session() as session:
            assert session.query(Client).count() == 1
            assert session.query(OnboardingStep).count() == 3

        steps = svc.get_steps("jane@example.com", "LAUNCH")
        assert [s.required_fields_completed for s in steps] == [7, 7, 3]

    def test_done_step_gets_completed_at(self, db_manager):
        result = OnboardingService(db_manager).complete_onboarding(
            "jane@example.com", "GROWTH", step_payloads(((12, 12), (9, 2), (13, 13)))
        )
        done, in_progress = result["steps"][0], result["steps"][1]
        assert done["status"] == "DONE" and done["completed_at"] is not None
        assert in_progress["status"] == "IN_PROGRESS" and in_progress["completed_at"] is None
        assert in_progress["started_at"] is not None

    def test_get_steps_without_client(self, db_manager):
        assert OnboardingService(db_manager).get_steps("nobody@example.com", "LAUNCH") == []


class TestStorageFailures:

    def test_complete_error_becomes_storage_error(self):
        db, session = _mock_db()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(StorageError):
            OnboardingService(db).complete_onboarding("jane@example.com", "LAUNCH", step_payloads())

    def test_get_steps_error_becomes_storage_error(self):
        db, _ = _mock_db()
        db.get_session.side_effect = OperationalError("CONNECT", {}, Exception("connection refused"))

        with pytest.raises(StorageError):
            OnboardingService(db).get_steps("jane@example.com", "LAUNCH")
