"""Application settings loaded from environment variables.

Environment Configuration:
    KBASE_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string (defaults to a local SQLite file)

Blob Store Configuration:
    BLOB_BACKEND: Content store backend (memory | supabase | s3)
    SUPABASE_URL / SUPABASE_SERVICE_KEY / STORAGE_BUCKET: Supabase Storage backend
    S3_ENDPOINT_URL / S3_ACCESS_KEY_ID / S3_SECRET_ACCESS_KEY / S3_BUCKET / S3_REGION:
        S3-compatible backend (Cloudflare R2, Tigris, MinIO, AWS)
    STORAGE_KEY_PREFIX: Optional prefix for every blob key (test isolation)

Auth Configuration:
    BASIC_AUTH_USER / BASIC_AUTH_PASSWORD: HTTP Basic Auth credentials.
        Required in staging/prod; local/test fall back to admin/password.

Redis / Celery Configuration:
    REDIS_URL: Redis connection string (required for worker)
    CELERY_BROKER_URL: Celery broker URL (defaults to REDIS_URL)
    CELERY_RESULT_BACKEND: Celery result backend URL (defaults to REDIS_URL)
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class BlobBackend(str, Enum):
    """Available content store backends."""

    MEMORY = "memory"
    SUPABASE = "supabase"
    S3 = "s3"


DEFAULT_BASIC_AUTH_USER = "admin"
DEFAULT_BASIC_AUTH_PASSWORD = "password"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - BASIC_AUTH_USER and BASIC_AUTH_PASSWORD are required in staging and prod
    - BLOB_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY
    - BLOB_BACKEND=s3 requires S3_BUCKET, S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY
    - BLOB_BACKEND=memory is refused in staging and prod
    """

    kbase_env: Environment = Field(default=Environment.LOCAL, alias="KBASE_ENV")
    database_url: str = Field(default="sqlite:///./kbase.db", alias="DATABASE_URL")

    # Blob store settings
    blob_backend: BlobBackend = Field(default=BlobBackend.MEMORY, alias="BLOB_BACKEND")
    storage_key_prefix: str = Field(default="", alias="STORAGE_KEY_PREFIX")

    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    storage_bucket: str = Field(default="articles", alias="STORAGE_BUCKET")

    s3_endpoint_url: str | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_access_key_id: str | None = Field(default=None, alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: str | None = Field(default=None, alias="S3_SECRET_ACCESS_KEY")
    s3_bucket: str | None = Field(default=None, alias="S3_BUCKET")
    s3_region: str = Field(default="auto", alias="S3_REGION")

    storage_timeout_s: float = Field(default=30.0, alias="STORAGE_TIMEOUT_S")

    # Basic auth
    basic_auth_user: str | None = Field(default=None, alias="BASIC_AUTH_USER")
    basic_auth_password: str | None = Field(default=None, alias="BASIC_AUTH_PASSWORD")

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")

    # Repair sweep
    orphan_shell_threshold_minutes: int = Field(
        default=15, ge=1, alias="ORPHAN_SHELL_THRESHOLD_MINUTES"
    )
    sweep_interval_seconds: int = Field(default=900, ge=60, alias="SWEEP_INTERVAL_SECONDS")

    # Logging
    log_json: bool = Field(default=True, alias="LOG_JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure backend and environment specific settings are present."""
        if self.is_deployed:
            missing_auth = []
            if not self.basic_auth_user:
                missing_auth.append("BASIC_AUTH_USER")
            if not self.basic_auth_password:
                missing_auth.append("BASIC_AUTH_PASSWORD")
            if missing_auth:
                raise ValueError(
                    f"{', '.join(missing_auth)} required for KBASE_ENV={self.kbase_env.value}"
                )
            if self.blob_backend == BlobBackend.MEMORY:
                raise ValueError(
                    f"BLOB_BACKEND=memory is not allowed for KBASE_ENV={self.kbase_env.value}"
                )

        if self.blob_backend == BlobBackend.SUPABASE:
            missing = []
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_service_key:
                missing.append("SUPABASE_SERVICE_KEY")
            if missing:
                raise ValueError(
                    f"Missing Supabase storage settings: {', '.join(missing)}"
                )

        if self.blob_backend == BlobBackend.S3:
            missing = []
            if not self.s3_bucket:
                missing.append("S3_BUCKET")
            if not self.s3_access_key_id:
                missing.append("S3_ACCESS_KEY_ID")
            if not self.s3_secret_access_key:
                missing.append("S3_SECRET_ACCESS_KEY")
            if missing:
                raise ValueError(f"Missing S3 storage settings: {', '.join(missing)}")

        return self

    @property
    def is_deployed(self) -> bool:
        """Whether this is a staging or production deployment."""
        return self.kbase_env in (Environment.STAGING, Environment.PROD)

    @property
    def effective_basic_auth_user(self) -> str:
        """Basic auth user, falling back to the local default."""
        return self.basic_auth_user or DEFAULT_BASIC_AUTH_USER

    @property
    def effective_basic_auth_password(self) -> str:
        """Basic auth password, falling back to the local default."""
        return self.basic_auth_password or DEFAULT_BASIC_AUTH_PASSWORD

    @property
    def effective_celery_broker_url(self) -> str | None:
        """Return Celery broker URL, falling back to REDIS_URL if not set."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        """Return Celery result backend URL, falling back to REDIS_URL if not set."""
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
