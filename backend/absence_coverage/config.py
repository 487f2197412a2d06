from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Absence Coverage"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://absence_coverage:absence_coverage@db:5432/absence_coverage"
    storage_backend: Literal["database", "memory"] = "database"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Placeholder until a payroll rate source is wired in.
    default_backfill_hourly_rate: float = 25.0
    hours_per_day: int = 8
    monthly_backfill_capacity_hours: float = 160.0
    backfills_needed_per_absence: int = 1


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
