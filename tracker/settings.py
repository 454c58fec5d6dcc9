from __future__ import annotations

from dataclasses import dataclass
import os

DEFAULT_RESEND_API_BASE = "https://api.resend.com"


@dataclass(frozen=True)
class AppSettings:
    environment: str = "development"
    base_url: str = "http://localhost:3000"
    database_url: str | None = None
    database_auto_migrate: bool = False
    resend_api_key: str | None = None
    resend_from: str = "noreply@localhost"
    resend_reply_to: str | None = None
    resend_api_base: str = DEFAULT_RESEND_API_BASE
    email_max_retries: int = 1
    email_retry_delay_ms: int = 1000
    whatsapp_api_url: str | None = None
    whatsapp_api_key: str | None = None
    http_timeout_seconds: int = 15

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def app_settings_from_env() -> AppSettings:
    resend_from = _env_str("RESEND_FROM") or "noreply@localhost"
    return AppSettings(
        environment=_env_str("APP_ENV") or "development",
        base_url=_env_str("APP_BASE_URL") or "http://localhost:3000",
        database_url=_env_str("DATABASE_URL"),
        database_auto_migrate=_env_bool("DATABASE_AUTO_MIGRATE", False),
        resend_api_key=_env_str("RESEND_API_KEY"),
        resend_from=resend_from,
        resend_reply_to=_env_str("RESEND_REPLY_TO") or resend_from,
        resend_api_base=_env_str("RESEND_API_BASE") or DEFAULT_RESEND_API_BASE,
        email_max_retries=_env_int("EMAIL_MAX_RETRIES", 1),
        email_retry_delay_ms=_env_int("EMAIL_RETRY_DELAY_MS", 1000),
        whatsapp_api_url=_env_str("WHATSAPP_API_URL"),
        whatsapp_api_key=_env_str("WHATSAPP_API_KEY"),
        http_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 15),
    )


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    return parsed if parsed > 0 else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
