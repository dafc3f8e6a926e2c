"""Domain exceptions for BuildTrack.

Validation errors are detected before any write and carry a
human-readable message suitable for returning to the caller.
Not-found errors are kept distinct so the API layer can map them
to 404 instead of 400.
"""


class BuildTrackError(Exception):
    """Base class for all BuildTrack domain errors."""


# =============================================================================
# Validation
# =============================================================================

class ValidationError(BuildTrackError, ValueError):
    """Request data failed validation. No state was changed."""


class InvalidTierError(ValidationError):
    """Plan tier is not one of the two known tiers."""

    def __init__(self, tier):
        self.tier = tier
        super().__init__(f"Invalid kit_type: {tier!r}. Must be one of: LAUNCH, GROWTH")


class InvalidPhaseError(ValidationError):
    """Phase id is not part of the catalog for the client's tier."""

    def __init__(self, phase_id, tier=None):
        self.phase_id = phase_id
        self.tier = tier
        super().__init__(f"Invalid phase_id: {phase_id}")


class InvalidChecklistLabelError(ValidationError):
    """Checklist label is not defined for the phase."""

    def __init__(self, label, phase_id):
        self.label = label
        self.phase_id = phase_id
        super().__init__(f"Invalid checklist_label: {label} for phase {phase_id}")


class InvalidStatusError(ValidationError):
    """Phase status is not one of the known statuses."""

    def __init__(self, status, valid=()):
        self.status = status
        message = f"Invalid status: {status!r}"
        if valid:
            message += f". Must be one of: {', '.join(valid)}"
        super().__init__(message)


# =============================================================================
# Lookup
# =============================================================================

class NotFoundError(BuildTrackError):
    """Requested record does not exist."""


class ClientNotFoundError(NotFoundError):
    """No client/project record for the identity or id."""


class SubmissionNotFoundError(NotFoundError):
    """No quiz submission with the given id."""


# =============================================================================
# Storage
# =============================================================================

class StorageError(BuildTrackError):
    """Persistence layer is unavailable or failed."""
