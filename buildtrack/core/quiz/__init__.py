"""Pre-signup quiz submissions."""

from .quiz_manager import QuizManager, REQUIRED_FIELDS

__all__ = ["QuizManager", "REQUIRED_FIELDS"]
