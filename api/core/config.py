"""
Configuration helpers for the FuelGo backend.

Routers and services receive a Settings instance instead of reading
os.environ directly; external clients (mailer, identity provider) are built
from it by the application factory.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    app_name: str
    database_url: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    firebase_service_account: str
    admin_delete_token: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        app_name=os.getenv("APP_NAME", "FuelGo"),
        database_url=os.getenv("DATABASE_URL", ""),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        firebase_service_account=os.getenv("FIREBASE_SERVICE_ACCOUNT", ""),
        admin_delete_token=(os.getenv("ADMIN_DELETE_TOKEN") or "").strip(),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
