from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.periodicity import LEGACY_PERIODICITY_CODES


class Settings(BaseSettings):
    # Load apps/hub/.env and accept env keys in any case
    _env_file = Path(__file__).resolve().parent.parent / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "HealthyPlant Hub"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Agenda / archive
    agenda_window_days: int = Field(
        default=14,
        ge=1,
        description="Upcoming agenda covers [today + 1 day, today + N days).",
    )
    archive_cutoff_months: int = Field(
        default=1,
        ge=0,
        description="History older than today minus N calendar months is handed to the archive.",
    )

    # Stored document decoding
    periodicity_fallback_code: int = Field(
        default=21,
        description="Legacy code substituted for unrecognized stored periodicity values.",
    )
    periodicity_strict_decoding: bool = Field(
        default=False,
        description="Reject unrecognized periodicity codes instead of substituting the fallback.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    @field_validator("periodicity_fallback_code")
    @classmethod
    def validate_fallback_code(cls, v: int) -> int:
        periodicity = LEGACY_PERIODICITY_CODES.get(v)
        if periodicity is None or not periodicity.is_active:
            raise ValueError(f"periodicity_fallback_code must be an active legacy code, got {v}")
        return v


settings = Settings()
