"""BuildTrack - client onboarding and 14-day build tracking service."""

__version__ = "0.1.0"
