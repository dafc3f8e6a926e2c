"""Email-based client identity."""

import hashlib
from dataclasses import dataclass
from typing import Optional

from ..constants import USER_ID_LENGTH
from ..errors import ValidationError


def normalize_email(email: Optional[str]) -> str:
    """Lower-case and trim an email; raises ValidationError if empty."""
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required")
    return email.strip().lower()


def user_id_from_email(email: str) -> str:
    """Stable user id: first 32 hex chars of sha256(normalized email)."""
    digest = hashlib.sha256(normalize_email(email).encode("utf-8")).hexdigest()
    return digest[:USER_ID_LENGTH]


@dataclass(frozen=True)
class ClientIdentity:
    """A resolved caller: hashed user id plus normalized email."""
    user_id: str
    email: str

    @classmethod
    def from_email(cls, email: str) -> "ClientIdentity":
        normalized = normalize_email(email)
        return cls(user_id=user_id_from_email(normalized), email=normalized)


def resolve_identity(
    session_email: Optional[str] = None,
    header_email: Optional[str] = None,
    query_email: Optional[str] = None,
) -> Optional[ClientIdentity]:
    """Resolve the caller from the first non-empty source.

    Order: logged-in session, then the trusted email header, then the
    ``email`` query parameter. Returns None when no source is present;
    the caller decides whether that is an authorization failure.
    """
    for candidate in (session_email, header_email, query_email):
        if isinstance(candidate, str) and candidate.strip():
            return ClientIdentity.from_email(candidate)
    return None
