"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from profit_engine.config.operational_constants import (
    DEFAULT_ITEM_MAX_RETRIES,
    DEFAULT_ITEM_RETRY_BACKOFF_SECONDS,
    DEFAULT_ITEM_TIMEOUT_SECONDS,
    DEFAULT_RUN_STALE_AFTER_SECONDS,
)
from profit_engine.models.enums import ActivationPolicy, CommissionPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for Dramatiq and distributed locks)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/distribution.log"
    health_check_port: int = Field(
        default=8080, ge=1, le=65535, description="Health check HTTP server port"
    )

    # Referral tree
    root_account_id: int = Field(
        default=1,
        gt=0,
        description="Designated root/admin account that terminates every upline chain",
    )

    # Cycle boundaries
    cycle_timezone: str = Field(
        default="UTC",
        description="Reference timezone used to compute the cycle date",
    )
    daily_cycle_hour: int = Field(default=1, ge=0, le=23)
    daily_cycle_minute: int = Field(default=0, ge=0, le=59)
    team_rewards_hour: int = Field(default=2, ge=0, le=23)

    # Distribution policy inputs
    activation_policy: ActivationPolicy = Field(
        default=ActivationPolicy.UNEXPIRED,
        description="Which activations make an account eligible for a cycle",
    )
    commission_policy: CommissionPolicy = Field(
        default=CommissionPolicy.INVESTMENT_BASED,
        description="Which upline accounts qualify for level commission",
    )
    fallback_daily_rate: Decimal = Field(
        default=Decimal("0.266"),
        gt=0,
        le=100,
        description="Daily profit percentage used when a plan rate is missing or invalid",
    )

    # Item processing
    item_timeout_seconds: float = Field(
        default=DEFAULT_ITEM_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for processing a single investment",
    )
    item_max_retries: int = Field(
        default=DEFAULT_ITEM_MAX_RETRIES,
        ge=0,
        le=10,
        description="Retries for transient store errors per investment",
    )
    item_retry_backoff_seconds: float = Field(
        default=DEFAULT_ITEM_RETRY_BACKOFF_SECONDS,
        ge=0,
        description="Base delay of the exponential retry backoff",
    )
    run_stale_after_seconds: int = Field(
        default=DEFAULT_RUN_STALE_AFTER_SECONDS,
        gt=0,
        description="Age after which a 'running' run is considered crashed",
    )

    # Emergency stop flag
    emergency_stop_distribution: bool = Field(
        default=False,
        description="Emergency stop for all profit and commission distribution",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cycle_timezone")
    @classmethod
    def validate_cycle_timezone(cls, v: str) -> str:
        """Validate that the cycle timezone is a known IANA name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown cycle timezone: {v}") from e
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production" and self.debug:
            raise ValueError(
                "DEBUG must be False in production environment. "
                "Set DEBUG=false in your .env file."
            )
        if self.emergency_stop_distribution:
            logger.warning(
                "EMERGENCY_STOP_DISTRIBUTION is enabled: daily cycles will not run"
            )
        return self

    @property
    def cycle_tz(self) -> ZoneInfo:
        """Reference timezone as a tzinfo object."""
        return ZoneInfo(self.cycle_timezone)


# Global settings instance
settings = Settings()
