"""
Configuration module with strict validation.

Key principles:
- DATABASE_URL is the only required setting
- Scoring knobs (percentile caps, coverage threshold, tie-break) have safe defaults
- Validation thresholds for the post-scoring data checks are configurable
"""
from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


OBSERVATION_PREFERENCES = {"latest", "earliest"}


class Settings(BaseSettings):
    """Application settings with validation.

    Loads from environment variables and .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database (REQUIRED)
    database_url: str = Field(
        ...,
        description="SQLAlchemy connection URL (SQLite or PostgreSQL)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # Outlier capping
    lower_percentile: float = Field(
        default=2.0,
        ge=0.0,
        le=50.0,
        description="Lower percentile bound used to cap outliers"
    )

    upper_percentile: float = Field(
        default=98.0,
        ge=50.0,
        le=100.0,
        description="Upper percentile bound used to cap outliers"
    )

    # Coverage
    min_regions_per_metric: int = Field(
        default=2,
        ge=2,
        description="Minimum regions with data before a metric is scored"
    )

    observation_preference: str = Field(
        default="latest",
        description="Tie-break between equally eligible observations: latest or earliest ingested"
    )

    # Export
    export_dir: str = Field(
        default="public/data",
        description="Directory for the static JSON bundles"
    )

    # Validation thresholds
    validation_min_regions: int = Field(
        default=20,
        ge=0,
        description="Warn when fewer regions than this have data"
    )

    validation_low_coverage: int = Field(
        default=10,
        ge=0,
        description="Warn for metrics observed in fewer regions than this"
    )

    validation_max_warnings: int = Field(
        default=10,
        ge=0,
        description="Validation fails when warnings exceed this count"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("observation_preference")
    @classmethod
    def validate_observation_preference(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in OBSERVATION_PREFERENCES:
            raise ValueError(
                f"observation_preference must be one of {OBSERVATION_PREFERENCES}"
            )
        return v_lower

    @model_validator(mode="after")
    def validate_percentile_order(self) -> "Settings":
        """The lower cap must sit strictly below the upper cap."""
        if self.lower_percentile >= self.upper_percentile:
            raise ValueError(
                "lower_percentile must be less than upper_percentile "
                f"(got {self.lower_percentile} >= {self.upper_percentile})"
            )
        return self


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    This pattern allows:
    - Easy testing (can reset settings between tests)
    - Lazy loading (only loads when first accessed)
    - Singleton pattern (same instance used everywhere)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Reset the global settings instance.

    Useful for testing to ensure clean state between tests.
    """
    global _settings
    _settings = None
