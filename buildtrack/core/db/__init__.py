"""
Database module for BuildTrack.

Exports:
- DatabaseManager: Database connection and session management
- get_database_manager: Factory function for DatabaseManager
- wait_for_db: Database availability checker with retry logic
- Models: Client, ClientPhaseState, QuizSubmission, OnboardingStep
- Base: SQLAlchemy declarative base
"""

from .db import DatabaseManager, get_database_manager, wait_for_db
from .models import (
    Base,
    Client,
    ClientPhaseState,
    QuizSubmission,
    OnboardingStep,
)

__all__ = [
    # Database management
    "DatabaseManager",
    "get_database_manager",
    "wait_for_db",

    # ORM models
    "Base",
    "Client",
    "ClientPhaseState",
    "QuizSubmission",
    "OnboardingStep",
]
