"""
Back-Office Dashboard
Centralized Configuration Management

Configuration is loaded with Pydantic settings from environment variables
and an optional ``.env`` file. Each subsystem owns its own section.
"""

from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="postgres", description="Database name")
    user: str = Field(default="postgres", description="Database user")
    password: SecretStr = Field(default="postgres", description="Database password")
    pool_size: int = Field(default=10, description="Connection pool size")
    max_overflow: int = Field(default=5, description="Max overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
        description="Full SQLAlchemy async URL (overrides host/port)",
    )

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis Cache Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_", populate_by_name=True)

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=20, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class AuthSettings(BaseSettings):
    """Hosted auth provider and admin allow-list"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    supabase_url: str = Field(default="http://localhost:54321", alias="SUPABASE_URL", description="Auth provider base URL")
    supabase_anon_key: SecretStr = Field(default="", alias="SUPABASE_ANON_KEY", description="Public API key sent as apikey header")
    admin_emails: List[str] = Field(
        default_factory=list,
        alias="ADMIN_EMAILS",
        description="JSON list of e-mail addresses allowed to read the dashboard",
    )
    timeout_seconds: float = Field(default=10.0, alias="AUTH_TIMEOUT_SECONDS", description="Token lookup timeout")

    @field_validator("admin_emails")
    @classmethod
    def normalize_emails(cls, v: List[str]) -> List[str]:
        """Compare addresses case-insensitively"""
        return [email.strip().lower() for email in v if email and email.strip()]


class DashboardSettings(BaseSettings):
    """Aggregation tuning"""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    default_filter: str = Field(default="month", description="Filter used when none is given")
    epoch: datetime = Field(default=datetime(2020, 1, 1), description="Start of the 'all' window")
    urgent_after_hours: int = Field(default=24, description="Age after which a reviewing request is urgent")
    pending_limit: int = Field(default=5, description="Pending-work rows per module")
    top_limit: int = Field(default=10, description="Length of top-N breakdowns")
    top_categories_limit: int = Field(default=8, description="Length of the problem category breakdown")
    trend_months: int = Field(default=6, description="Months in the monthly series")
    trend_days: int = Field(default=30, description="Days in the daily series")
    max_concurrent_queries: int = Field(default=8, description="Upper bound on in-flight queries per request")
    cache_ttl_seconds: int = Field(default=0, description="Per-filter response cache TTL, 0 disables caching")

    @property
    def cache_enabled(self) -> bool:
        return self.cache_ttl_seconds > 0


class SecuritySettings(BaseSettings):
    """CORS configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    cors_origins: List[str] = Field(
        default=["http://localhost:8501", "http://localhost:3000"],
        alias="CORS_ORIGINS",
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class ViewSettings(BaseSettings):
    """Streamlit dashboard view"""

    model_config = SettingsConfigDict(env_prefix="VIEW_")

    api_base_url: str = Field(default="http://localhost:8000/api/v1", description="Aggregator API base URL")
    auto_refresh_seconds: int = Field(default=300, description="Auto-refresh interval, 0 disables it")
    request_timeout_seconds: float = Field(default=60.0, description="Dashboard request timeout")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="backoffice-dashboard", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")
    api_workers: int = Field(default=2, alias="API_WORKERS", description="API workers")

    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    view: ViewSettings = Field(default_factory=ViewSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
