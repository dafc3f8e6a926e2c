"""Shared fixtures: an in-memory SQLite database and seeded records."""

import pytest

from buildtrack.core.config import Settings
from buildtrack.core.db import DatabaseManager

ADMIN_EMAIL = "admin@studio.test"
ADMIN_KEY = "test-admin-key"


@pytest.fixture
def db_manager():
    db = DatabaseManager("sqlite:///:memory:")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite:///:memory:",
        session_secret_key="test-secret",
        admin_emails=[ADMIN_EMAIL],
        admin_api_key=ADMIN_KEY,
    )


def quiz_payload(email="jane@example.com", preferred_kit="LAUNCH", **overrides):
    payload = {
        "full_name": "Jane Doe",
        "email": email,
        "phone_number": "+44 7700 900000",
        "brand_name": "Jane Makes",
        "logo_status": "Have a logo",
        "brand_goals": ["More leads"],
        "online_presence": "Instagram only",
        "audience": ["Small businesses"],
        "brand_style": "Minimal",
        "timeline": "ASAP",
        "preferred_kit": preferred_kit,
    }
    payload.update(overrides)
    return payload


def step_payloads(counts=((7, 7), (7, 6), (3, 3))):
    """Three step payloads from (required_total, required_completed) pairs."""
    return [
        {
            "step_number": number,
            "status": "DONE" if completed >= total - 1 else "IN_PROGRESS",
            "required_fields_total": total,
            "required_fields_completed": completed,
            "fields": {"answer": f"step {number}"},
        }
        for number, (total, completed) in enumerate(counts, start=1)
    ]
