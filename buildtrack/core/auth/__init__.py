"""Identity resolution.

Callers are identified by email. The API layer resolves a
ClientIdentity once per request and passes it into the core; nothing
below the API reads request state.
"""

from .identity import (
    ClientIdentity,
    normalize_email,
    user_id_from_email,
    resolve_identity,
)

__all__ = [
    "ClientIdentity",
    "normalize_email",
    "user_id_from_email",
    "resolve_identity",
]
