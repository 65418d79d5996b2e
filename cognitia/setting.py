"""Runtime settings for Cognitia.

All configuration comes from environment variables (optionally loaded from a
``.env`` file). Nothing here fails on a missing value: the operations that
need a setting raise ConfigurationError themselves.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"
DEFAULT_DATABASE_URL = "sqlite:///intelligence.db"
DEFAULT_SESSION_SECRET = "cognitia-dev-secret-change-me"
CALLBACK_PATH = "/auth/google/callback"


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """Deployment configuration."""

    app_url: Optional[str] = None
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_key_name: str = "NONE"
    gemini_model: str = DEFAULT_GEMINI_MODEL
    database_url: str = DEFAULT_DATABASE_URL
    session_secret: str = DEFAULT_SESSION_SECRET
    firebase_service_account: Optional[str] = None
    trusted_origin_suffixes: Tuple[str, ...] = ()
    cors_origins: Tuple[str, ...] = field(
        default=("http://localhost:3000", "http://localhost:5173")
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        COGAPI3 takes precedence over GEMINI_API_KEY.
        """
        app_url = _clean(os.getenv("APP_URL"))
        if app_url:
            app_url = app_url.rstrip("/")

        key_name = "NONE"
        api_key = None
        for name in ("COGAPI3", "GEMINI_API_KEY"):
            if os.getenv(name):
                key_name = name
                api_key = _clean(os.getenv(name))
                break

        return cls(
            app_url=app_url,
            google_client_id=_clean(os.getenv("GOOGLE_CLIENT_ID")),
            google_client_secret=_clean(os.getenv("GOOGLE_CLIENT_SECRET")),
            gemini_api_key=api_key,
            gemini_key_name=key_name,
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            session_secret=os.getenv("SESSION_SECRET_KEY", DEFAULT_SESSION_SECRET),
            firebase_service_account=os.getenv("FIREBASE_SERVICE_ACCOUNT"),
            trusted_origin_suffixes=_split_csv(os.getenv("TRUSTED_ORIGIN_SUFFIXES", "")),
            cors_origins=_split_csv(
                os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
            ),
        )

    @property
    def redirect_uri(self) -> Optional[str]:
        if not self.app_url:
            return None
        return f"{self.app_url}{CALLBACK_PATH}"

    @property
    def gemini_key_configured(self) -> bool:
        return bool(self.gemini_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings, loading ``.env`` on first use."""
    load_dotenv()
    return Settings.from_env()
