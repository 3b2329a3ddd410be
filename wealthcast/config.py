"""Engine configuration management using Pydantic Settings."""

import logging
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")

    # Monte Carlo Configuration
    mc_default_paths: int = Field(default=5000, gt=0, alias="MC_DEFAULT_PATHS")
    mc_max_paths: int = Field(default=100000, gt=0, alias="MC_MAX_PATHS")
    mc_default_horizon_days: int = Field(
        default=365, gt=0, alias="MC_DEFAULT_HORIZON_DAYS"
    )

    # Market Assumptions (annual, decimal)
    expected_market_return: float = Field(default=0.072, alias="EXPECTED_MARKET_RETURN")
    market_volatility: float = Field(default=0.15, ge=0, alias="MARKET_VOLATILITY")
    benchmark_volatility: float = Field(
        default=0.15, ge=0, alias="BENCHMARK_VOLATILITY"
    )

    # Result Cache Configuration
    cache_max_entries: int = Field(default=128, gt=0, alias="CACHE_MAX_ENTRIES")
    cache_ttl_seconds: float = Field(default=300.0, gt=0, alias="CACHE_TTL_SECONDS")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v):
        """Validate application environment."""
        allowed_envs = {"development", "testing", "production"}
        if v not in allowed_envs:
            raise ValueError(f"APP_ENV must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_default_paths(self) -> "Settings":
        """Keep the default path count within the configured maximum."""
        if self.mc_default_paths > self.mc_max_paths:
            raise ValueError("MC_DEFAULT_PATHS cannot exceed MC_MAX_PATHS")
        return self


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get engine settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


# Global settings instance - created on first use
_settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply LOG_LEVEL to the wealthcast logger hierarchy."""
    settings = settings or get_global_settings()
    logging.basicConfig(
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("wealthcast").setLevel(settings.log_level)
