"""
Salon Analytics Service
Centralized Configuration Management

Pydantic settings with environment variable support for the datastore
connection, logging, HTTP boundary and the analytics engine thresholds.
"""

from functools import lru_cache
from typing import List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration (read-only access)"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="salon", alias="database", description="Database name")
    user: str = Field(default="salon_readonly", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: str = Field(default="", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class SecuritySettings(BaseSettings):
    """HTTP boundary settings"""

    model_config = SettingsConfigDict(env_prefix="")

    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class AnalyticsSettings(BaseSettings):
    """Analytics engine thresholds and defaults"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    default_lookback_days: int = Field(default=90, ge=0, description="Window used when startDate is omitted")
    high_value_threshold: float = Field(default=50000, description="totalSpent above which a customer is high value")
    regular_min_bookings: int = Field(default=3, ge=1, description="Minimum bookings for the regular segment")
    top_customers_limit: int = Field(default=10, ge=1, description="Size of the top customer list")
    forecast_window_weeks: int = Field(default=8, ge=2, description="Trailing weeks used by the forecast")
    collapse_anonymous_customers: bool = Field(
        default=False,
        description="Merge all guests without email or account into one 'anonymous' customer",
    )
    daily_slot_capacity: int = Field(default=40, ge=1, description="Bookable slots per day for utilization")
    disconnect_poll_seconds: float = Field(default=0.5, gt=0, description="Client disconnect poll interval")
    top_items_limit: int = Field(default=10, ge=1, description="Size of the service popularity and product sales lists")
    report_title: str = Field(default="Salon Analytics Report", description="Export header line")


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
    )

    # Application
    app_name: str = Field(default="salon-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")
    api_workers: int = Field(default=4, alias="API_WORKERS", description="API workers")

    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

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
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
