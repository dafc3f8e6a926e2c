"""Tests for QuizManager and the login lookup."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from buildtrack.core.auth import ClientIdentity
from buildtrack.core.clients import ClientManager
from buildtrack.core.errors import StorageError, SubmissionNotFoundError, ValidationError
from buildtrack.core.quiz import QuizManager

from conftest import quiz_payload


def _mock_db():
    """Create a mock DatabaseManager."""
    db = MagicMock()
    session = MagicMock()
    db.get_session.return_value.__enter__ = MagicMock(return_value=session)
    db.get_session.return_value.__exit__ = MagicMock(return_value=False)
    return db, session


@pytest.fixture
def quiz(db_manager):
    return QuizManager(db_manager)


class TestCreateSubmission:

    def test_missing_fields_listed(self, quiz):
        payload = quiz_payload()
        del payload["brand_name"]
        payload["timeline"] = "  "

        with pytest.raises(ValidationError, match="brand_name, timeline"):
            quiz.create_submission(payload)

    def test_normalizes_email_and_kit(self, quiz):
        submission = quiz.create_submission(quiz_payload(email=" Jane@Example.COM", preferred_kit="growth"))
        assert submission["email"] == "jane@example.com"
        assert submission["preferred_kit"] == "GROWTH"

    def test_unknown_kit_stored_as_none(self, quiz):
        assert quiz.create_submission(quiz_payload(preferred_kit="Not sure"))["preferred_kit"] is None

    def test_optional_lists_default_empty(self, quiz):
        payload = quiz_payload()
        del payload["brand_goals"]
        payload["audience"] = "Local shops"

        submission = quiz.create_submission(payload)

        assert submission["brand_goals"] == []
        assert submission["audience"] == ["Local shops"]


class TestReadSubmissions:

    def test_get_with_history_and_project(self, db_manager, quiz):
        first = quiz.create_submission(quiz_payload())
        quiz.create_submission(quiz_payload(preferred_kit="GROWTH"))
        ClientManager(db_manager).set_onboarding_status(
            ClientIdentity.from_email("jane@example.com"), "LAUNCH", True
        )

        detail = quiz.get_submission(first["id"])

        assert detail["submission"]["id"] == first["id"]
        assert detail["summary"] == {"has_project": True, "total_submissions": 2}
        assert detail["project"]["kit_type"] == "LAUNCH"

    @pytest.mark.parametrize("submission_id", ["nope", "6f1c1f0e-0000-4000-8000-000000000000"])
    def test_not_found(self, quiz, submission_id):
        with pytest.raises(SubmissionNotFoundError):
            quiz.get_submission(submission_id)

    def test_list_filters_by_kit(self, quiz):
        quiz.create_submission(quiz_payload(preferred_kit="LAUNCH"))
        quiz.create_submission(quiz_payload(email="sam@example.com", preferred_kit="GROWTH"))

        page = quiz.list_submissions(kit_type="GROWTH")

        assert page["total"] == 1
        assert page["submissions"][0]["email"] == "sam@example.com"

    def test_list_users_one_entry_per_email(self, quiz):
        quiz.create_submission(quiz_payload())
        quiz.create_submission(quiz_payload(full_name="Jane Renamed"))
        quiz.create_submission(quiz_payload(email="sam@example.com"))

        page = quiz.list_users()

        assert page["total"] == 2
        jane = next(u for u in page["users"] if u["email"] == "jane@example.com")
        assert jane["full_name"] == "Jane Renamed"
        assert jane["has_project"] is False
        assert jane["user_uuid"] == jane["id"]


class TestLookupUser:

    def test_unregistered(self, quiz):
        result = quiz.lookup_user("nobody@example.com")
        assert result["exists"] is False
        assert "complete the quiz" in result["error"]

    def test_registered_without_client(self, quiz):
        quiz.create_submission(quiz_payload(preferred_kit="GROWTH"))

        result = quiz.lookup_user("JANE@example.com")

        assert result["exists"] is True
        assert result["name"] == "Jane Doe"
        assert result["kit_type"] == "GROWTH"
        assert result["available_kit_types"] == ["GROWTH"]
        assert result["onboarding_finished"] is False

    def test_kits_from_quiz_and_clients(self, db_manager, quiz):
        quiz.create_submission(quiz_payload(preferred_kit=None))
        ClientManager(db_manager).set_onboarding_status(
            ClientIdentity.from_email("jane@example.com"), "GROWTH", True
        )

        result = quiz.lookup_user("jane@example.com")

        assert result["kit_type"] == "GROWTH"
        assert result["available_kit_types"] == ["GROWTH"]
        assert result["onboarding_finished"] is True

    def test_no_kit_anywhere_defaults_to_launch(self, quiz):
        quiz.create_submission(quiz_payload(preferred_kit=None))

        result = quiz.lookup_user("jane@example.com")

        assert result["kit_type"] == "LAUNCH"
        assert result["available_kit_types"] == ["LAUNCH"]

    def test_requires_email(self, quiz):
        with pytest.raises(ValidationError):
            quiz.lookup_user("")


class TestStorageFailures:

    def test_lookup_error_becomes_storage_error(self):
        db, session = _mock_db()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(StorageError):
            QuizManager(db).lookup_user("jane@example.com")

    def test_create_error_becomes_storage_error(self):
        db, session = _mock_db()
        session.flush.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))

        with pytest.raises(StorageError):
            QuizManager(db).create_submission(quiz_payload())

    def test_session_error_becomes_storage_error(self):
        db, _ = _mock_db()
        db.get_session.side_effect = OperationalError("CONNECT", {}, Exception("connection refused"))

        with pytest.raises(StorageError):
            QuizManager(db).list_users()

    def test_validation_happens_before_storage(self):
        db, _ = _mock_db()

        with pytest.raises(ValidationError):
            QuizManager(db).create_submission({"email": "jane@example.com"})

        db.get_session.assert_not_called()
