"""Utility modules for the buildtrack core package.

This package contains shared utility functions used across the codebase.
"""

from .time_utils import utcnow

__all__ = ["utcnow"]
