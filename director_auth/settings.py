"""Application settings and configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Director of One authentication settings.

    All settings can be overridden via environment variables.
    Example: DATABASE_URL, JWT_SECRET_KEY, MAX_LOGIN_ATTEMPTS
    """

    # Application settings
    debug: bool = Field(False)
    environment: str = Field("development")
    host: str = Field("0.0.0.0")
    port: int = Field(3000)
    api_v1_prefix: str = Field("/api/v1")

    # Database settings
    database_url: str = Field("sqlite+aiosqlite:///./director_auth.db")

    # Redis settings
    redis_url: str = Field("redis://localhost:6379")

    # Celery settings
    celery_broker_url: str = Field("redis://localhost:6379/0")
    celery_result_backend: str = Field("redis://localhost:6379/0")

    # CORS settings
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging settings
    log_level: str = Field("INFO")
    log_format: str = Field("json")
    log_dir: str = Field("logs")

    # JWT settings
    jwt_secret_key: str = Field("director-of-one-secret-change-in-production")
    jwt_algorithm: str = Field("HS256")
    access_token_expire_minutes: int = Field(15)
    refresh_token_expire_days: int = Field(30)

    # Account security settings
    bcrypt_rounds: int = Field(10)
    max_login_attempts: int = Field(5)
    lockout_minutes: int = Field(15)
    password_reset_expire_minutes: int = Field(60)
    session_timeout_minutes: int = Field(24 * 60)

    # Auth rate limiting
    rate_limit_backend: str = Field("memory")
    auth_rate_limit_window_seconds: int = Field(15 * 60)
    auth_rate_limit_max_requests: int = Field(20)
    rate_limit_cleanup_interval_seconds: int = Field(60)

    # Maintenance
    token_cleanup_interval_seconds: int = Field(3600)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def is_development(self) -> bool:
        """Check if error details may be exposed to clients."""
        return self.debug or self.environment == "development"

    @property
    def database_is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return self.database_url.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
