"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Required fields (e.g. SECRET_KEY) are validated at
load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults except secret_key, which is
    validated in validate_required.
    """

    # App
    app_name: str = "backoffice"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database (SQLAlchemy + Alembic). Empty URL = SQL not configured.
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # Security
    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 hours

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Organization (tenant) scoping
    org_header_name: str = "X-Org-ID"

    # Request / middleware
    request_id_header: str = "X-Request-ID"

    # Redis cache (resolved roles)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    cache_ttl_roles: int = 300

    # Analytics sink (PostHog-compatible capture endpoint)
    analytics_enabled: bool = False
    analytics_host: str = "https://app.posthog.com"
    analytics_api_key: SecretStr | None = None
    analytics_timeout_seconds: float = 5.0

    # Audit trail: how long shutdown waits for in-flight audit writes.
    audit_drain_timeout_seconds: float = 5.0

    # Usage metering: record every /api/v1 call an access guard admitted.
    # Only the HTTP metering middleware is switched off; usage endpoints
    # and event recording keep working.
    api_usage_tracking_enabled: bool = True

    # Invitations
    invite_ttl_days: int = 7

    # Telemetry (OpenTelemetry tracing)
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"  # console, otlp, none
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Validate required env and dependent options.

        - SECRET_KEY is always required (JWT verification).
        - ANALYTICS_API_KEY is required when analytics is enabled.
        """
        if not self.secret_key.get_secret_value():
            raise ValueError(
                "SECRET_KEY is required. Generate with: openssl rand -hex 32."
            )
        if self.analytics_enabled:
            has_key = (
                self.analytics_api_key
                and self.analytics_api_key.get_secret_value()
            )
            if not has_key:
                raise ValueError(
                    "ANALYTICS_API_KEY is required when ANALYTICS_ENABLED is true."
                )
        if self.cache_ttl_roles <= 0:
            raise ValueError(
                f"cache_ttl_roles must be positive, got: {self.cache_ttl_roles!r}"
            )
        if self.invite_ttl_days <= 0:
            raise ValueError(
                f"invite_ttl_days must be positive, got: {self.invite_ttl_days!r}"
            )
        if not 0.0 <= self.telemetry_sample_rate <= 1.0:
            raise ValueError(
                "telemetry_sample_rate must be between 0.0 and 1.0, "
                f"got: {self.telemetry_sample_rate!r}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
