"""Application configuration using pydantic-settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./ledger.db"

    # Lot accounting
    DEFAULT_ALLOCATION_METHOD: str = "LIFO"

    # Market data
    QUOTE_LOOKBACK_DAYS: int = 10

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("DEFAULT_ALLOCATION_METHOD", mode="before")
    @classmethod
    def validate_allocation_method(cls, v: str) -> str:
        """Normalize the default lot allocation convention to LIFO or FIFO."""
        valid = {"LIFO", "FIFO"}
        if v.upper() not in valid:
            raise ValueError(
                f"DEFAULT_ALLOCATION_METHOD must be one of {valid}, got {v!r}"
            )
        return v.upper()

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
