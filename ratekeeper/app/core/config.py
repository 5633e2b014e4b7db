from typing import TYPE_CHECKING

from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from ratekeeper.app.ratelimit.models import RateLimitConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    Rate limit values are not range-checked here: out-of-range values are
    replaced with defaults by RateLimitConfig.normalized() so that the
    admission path stays available even when misconfigured.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Rate limiting settings (per client key)
    rate_limit_rate: float = 1.0  # Tokens added per second
    rate_limit_capacity: int = 5  # Maximum burst size
    rate_limit_sweep_interval_seconds: float = 60.0  # Seconds between idle sweeps
    rate_limit_idle_threshold_seconds: float = 180.0  # Idle age before eviction

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def rate_limit_config(self) -> "RateLimitConfig":
        """Build the normalized limiter configuration from these settings."""
        from ratekeeper.app.ratelimit.models import RateLimitConfig

        return RateLimitConfig(
            rate=self.rate_limit_rate,
            capacity=self.rate_limit_capacity,
            sweep_interval=self.rate_limit_sweep_interval_seconds,
            idle_threshold=self.rate_limit_idle_threshold_seconds,
        ).normalized()


# Global settings instance
settings = Settings()
