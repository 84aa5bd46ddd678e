"""
Configuration Management for Household Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Remote storage credentials, snapshot layout and ledger thresholds are
validated once, at startup, instead of being read ad hoc.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Google Sheets rejects cells longer than 50,000 characters
SHEETS_CELL_LIMIT = 50000


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets snapshot storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the spreadsheet that holds the snapshots"
    )
    chunk_size: int = Field(
        default=45000,
        ge=1000,
        lt=SHEETS_CELL_LIMIT,
        description="Maximum characters of snapshot content per cell"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running a backup."
            )
        return v


class SyncSettings(BaseSettings):
    """Backup/restore layout and limits."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        extra="ignore"
    )

    root_folder: str = Field(
        default="FinanceApp",
        min_length=1,
        description="Top-level folder every profile folder lives under"
    )
    snapshot_file_name: str = Field(
        default="transactions.json",
        min_length=1,
        description="Blob name of a profile snapshot"
    )
    operation_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=300,
        description="Ceiling for a single backup or restore round trip"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level of emitted log lines"
    )
    log_format: str = Field(
        default="json",
        pattern="^(json|console)$",
        description="Render logs as JSON lines or for a terminal"
    )

    # Ledger behaviour
    default_profile: str = Field(
        default="edson",
        description="Profile used when a request names none (or an unknown one)"
    )
    max_transaction_amount: float = Field(
        default=1000000.0,
        gt=0,
        description="Amounts above this are flagged for review on import"
    )

    @field_validator('log_level', mode='before')
    @classmethod
    def upper_log_level(cls, v):
        """Accept lower-case level names from the environment."""
        return v.upper() if isinstance(v, str) else v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "sync", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
