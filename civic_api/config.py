"""
Centralized settings for the civic complaint backend.

Provides a lightweight wrapper around environment variables (with `.env`
support for local development) so the rest of the codebase can import a single
`get_settings()` helper when configuration is needed. Explicit environment
variables always win over values read from `.env`.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional
import os

from dotenv import dotenv_values


@dataclass(frozen=True)
class Settings:
    """Immutable view of application configuration."""

    # General
    environment: str
    app_title: str
    app_referer: str
    allowed_origins: tuple[str, ...]
    allowed_hosts: tuple[str, ...]
    sentry_dsn: Optional[str]

    # Database
    database_url: str

    # Image storage
    storage_provider: str
    local_storage_path: Path
    max_image_bytes: int
    s3_bucket: str
    s3_region: str
    s3_endpoint: Optional[str]
    s3_use_ssl: bool
    s3_access_key_id: Optional[str]
    s3_secret_access_key: Optional[str]
    s3_public_base_url: Optional[str]

    # Outbound HTTP
    http_timeout_seconds: float

    # Geocoding (OpenStreetMap Nominatim)
    nominatim_url: str
    nominatim_user_agent: str
    geocode_country_codes: str

    # AI summaries (OpenRouter chat completions)
    openrouter_api_key: Optional[str]
    openrouter_url: str
    openrouter_model: str
    summary_max_tokens: int
    summary_limit: int
    default_region: str


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_tuple(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _env_lookup(key: str, env: dict[str, str], default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key) or env.get(key) or default


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process."""

    env_path = Path(__file__).resolve().parents[1] / ".env"
    env_file = dotenv_values(str(env_path)) if env_path.exists() else {}

    local_storage = _env_lookup("LOCAL_STORAGE_PATH", env_file) or str(
        Path(__file__).resolve().parents[1] / "storage"
    )

    return Settings(
        environment=_env_lookup("APP_ENV", env_file, "development"),
        app_title=_env_lookup("APP_TITLE", env_file, "Sheher Sunta Hai"),
        app_referer=_env_lookup("APP_REFERER", env_file, "http://localhost:5000"),
        allowed_origins=_as_tuple(_env_lookup("ALLOWED_ORIGINS", env_file, "*")),
        allowed_hosts=_as_tuple(_env_lookup("ALLOWED_HOSTS", env_file, "*")),
        sentry_dsn=_env_lookup("SENTRY_DSN", env_file),
        database_url=_env_lookup("DATABASE_URL", env_file, "sqlite+aiosqlite:///./civic.db"),
        storage_provider=_env_lookup("STORAGE_PROVIDER", env_file, "local").lower(),
        local_storage_path=Path(local_storage),
        max_image_bytes=int(_env_lookup("MAX_IMAGE_BYTES", env_file, str(5 * 1024 * 1024))),
        s3_bucket=_env_lookup("S3_BUCKET", env_file, "sheher-sunta-hai-uploads"),
        s3_region=_env_lookup("S3_REGION", env_file, "ap-southeast-2"),
        s3_endpoint=_env_lookup("S3_ENDPOINT", env_file) or _env_lookup("S3_ENDPOINT_URL", env_file),
        s3_use_ssl=_as_bool(_env_lookup("S3_USE_SSL", env_file, "true"), True),
        s3_access_key_id=_env_lookup("S3_ACCESS_KEY_ID", env_file) or _env_lookup("AWS_ACCESS_KEY_ID", env_file),
        s3_secret_access_key=_env_lookup("S3_SECRET_ACCESS_KEY", env_file)
        or _env_lookup("AWS_SECRET_ACCESS_KEY", env_file),
        s3_public_base_url=_env_lookup("S3_PUBLIC_BASE_URL", env_file),
        http_timeout_seconds=float(_env_lookup("HTTP_TIMEOUT_SECONDS", env_file, "10")),
        nominatim_url=_env_lookup("NOMINATIM_URL", env_file, "https://nominatim.openstreetmap.org"),
        nominatim_user_agent=_env_lookup(
            "NOMINATIM_USER_AGENT", env_file, "SheherSuntaHai/1.0 (contact@example.com)"
        ),
        geocode_country_codes=_env_lookup("GEOCODE_COUNTRY_CODES", env_file, "pk"),
        openrouter_api_key=_env_lookup("OPENROUTER_API_KEY", env_file),
        openrouter_url=_env_lookup(
            "OPENROUTER_URL", env_file, "https://openrouter.ai/api/v1/chat/completions"
        ),
        openrouter_model=_env_lookup("OPENROUTER_MODEL", env_file, "openai/gpt-3.5-turbo"),
        summary_max_tokens=int(_env_lookup("SUMMARY_MAX_TOKENS", env_file, "300")),
        summary_limit=int(_env_lookup("SUMMARY_LIMIT", env_file, "10")),
        default_region=_env_lookup("DEFAULT_REGION", env_file, "Pakistan"),
    )


__all__ = ["Settings", "get_settings"]
