"""
Configuration helpers for the MediKeep backend.

Every environment variable the app reads lives here so that routers, services
and adapters never fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


DEFAULT_PROFILE_IMAGE = "/default-profile.png"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    db_timeout_seconds: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    smtp_timeout_seconds: int
    uploads_dir: str
    max_image_bytes: int
    session_ttl_seconds: int
    share_rate_limit: int
    share_rate_window_seconds: int
    trust_proxy_headers: bool
    log_level: str
    log_format: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./medikeep.db"),
        db_timeout_seconds=_int(os.getenv("DB_TIMEOUT_SECONDS", "10"), 10),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        smtp_timeout_seconds=_int(os.getenv("SMTP_TIMEOUT_SECONDS", "15"), 15),
        uploads_dir=os.getenv("UPLOADS_DIR", os.path.abspath("uploads")),
        max_image_bytes=_int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)), 5 * 1024 * 1024),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        share_rate_limit=_int(os.getenv("SHARE_RATE_LIMIT", "10"), 10),
        share_rate_window_seconds=_int(os.getenv("SHARE_RATE_WINDOW_SECONDS", "600"), 600),
        trust_proxy_headers=_bool(os.getenv("TRUST_PROXY_HEADERS"), False),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_format=(os.getenv("LOG_FORMAT") or "text").lower(),
    )
