"""Shared constants for BuildTrack.

This module contains constants that are used across multiple modules
to avoid duplication and ensure consistency.
"""

# =============================================================================
# Build Timeline
# =============================================================================

# Length of the build, in days. Fixed for both plan tiers.
TOTAL_BUILD_DAYS = 14

# Valid range for Client.current_day_of_14
MIN_BUILD_DAY = 1
MAX_BUILD_DAY = 14

# =============================================================================
# Identity
# =============================================================================

# Length of the hex user id derived from a hashed email
USER_ID_LENGTH = 32

# Header carrying the caller's email when no session is present
USER_EMAIL_HEADER = "X-User-Email"

# Header carrying the admin API key for service-to-service calls
ADMIN_KEY_HEADER = "X-Admin-Key"

# =============================================================================
# Role Names
# =============================================================================

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"

# =============================================================================
# Pagination
# =============================================================================

DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 500

# =============================================================================
# Onboarding
# =============================================================================

# Number of onboarding steps a client submits on completion
ONBOARDING_STEP_COUNT = 3

# onboarding_percent value at which onboarding counts as finished
ONBOARDING_FINISHED_PERCENT = 100
