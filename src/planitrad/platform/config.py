"""
PlaniTrad Configuration Management

Uses Pydantic Settings for type-safe configuration from environment variables.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # =========================================================================
    # APPLICATION
    # =========================================================================
    APP_NAME: str = "PlaniTrad"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "info"
    VERSION: str = "0.1.0"

    # Deadlines and allocations are expressed in this zone
    TIMEZONE: str = "America/Toronto"

    # =========================================================================
    # STORAGE
    # =========================================================================
    DATABASE_URL: str = "sqlite:///data/planitrad.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # =========================================================================
    # TRANSLATOR DEFAULTS
    # =========================================================================
    HORAIRE_DEFAUT: str = "9h-17h"
    CAPACITE_DEFAUT: float = 7.0
    PAUSE_MIDI: str = "12h-13h"

    # =========================================================================
    # REPARTITION
    # =========================================================================
    # Business days examined backward from the deadline before giving up
    JAT_MAX_LOOKBACK_JOURS: int = Field(default=30, ge=1)
    JAT_HEURES_MAX_JOUR_J: float = Field(default=2.0, ge=0)

    # =========================================================================
    # CONFLICTS & SUGGESTIONS
    # =========================================================================
    SUGGESTION_MAX_CANDIDATS: int = Field(default=3, ge=1)
    SUGGESTION_HORIZON_JOURS: int = Field(default=3, ge=1)
    MARGE_ECHEANCE_PROCHE_HEURES: float = 24.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError:
            raise ValueError(f"Unknown timezone: {value}")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
