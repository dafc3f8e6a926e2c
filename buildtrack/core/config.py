"""Runtime configuration for BuildTrack.

Settings are read from the environment (a local ``.env`` file is loaded
first when present). Use ``get_settings()`` rather than constructing
``Settings`` directly so every caller sees the same instance.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///buildtrack.db"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """Application settings."""
    database_url: str = DEFAULT_DATABASE_URL
    session_secret_key: str = "buildtrack-dev-secret-change-me"
    admin_emails: List[str] = field(default_factory=list)
    admin_api_key: Optional[str] = None
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        load_dotenv()

        settings = cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            session_secret_key=os.getenv("SESSION_SECRET_KEY", cls.session_secret_key),
            admin_emails=[e.lower() for e in _split_csv(os.getenv("ADMIN_EMAILS"))],
            admin_api_key=os.getenv("ADMIN_API_KEY") or None,
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS")) or list(DEFAULT_CORS_ORIGINS),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

        if settings.session_secret_key == cls.session_secret_key:
            logger.warning("SESSION_SECRET_KEY not set, using development default")

        return settings

    def is_admin_email(self, email: Optional[str]) -> bool:
        return bool(email) and email.lower() in self.admin_emails


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings.from_env()
