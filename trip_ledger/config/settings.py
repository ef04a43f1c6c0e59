"""
Configuration Management for Trip Ledger

Uses pydantic-settings for type-safe configuration from environment
variables and an optional .env file.

All configuration lives here: currency rates, the settlement and display
currencies, split tolerance, logging and the Google Sheets backend.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trip_ledger.models.money import Currency


class LedgerSettings(BaseSettings):
    """Core ledger behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="TRIP_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    settlement_currency: Currency = Field(
        default=Currency.TWD,
        description="Currency settlement balances are reported in"
    )
    display_currency: Currency = Field(
        default=Currency.USD,
        description="Alternate currency shown next to settlement totals"
    )
    split_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        le=Decimal("0.01"),
        description="How far custom split amounts may miss the total"
    )
    log_level: str = Field(
        default="INFO",
        description="Standard library log level name"
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON (False for console output)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class RateSettings(BaseSettings):
    """
    Fixed currency rates.

    Pairs are keyed "SOURCE/TARGET" and mean 1 SOURCE = rate TARGET, e.g.
    RATES_PAIRS='{"USD/TWD": "32"}'.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    pairs: dict[str, Decimal] = Field(
        default_factory=lambda: {"USD/TWD": Decimal("32")},
        description="Rate table keyed SOURCE/TARGET"
    )
    allow_reciprocal: bool = Field(
        default=True,
        description="Convert B->A with 1/rate(A->B) when only A->B is configured"
    )

    @field_validator("pairs")
    @classmethod
    def validate_pairs(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        for key, rate in v.items():
            _parse_pair(key)
            if rate <= 0:
                raise ValueError(f"Rate for {key} must be positive")
        return v

    def as_table(self) -> dict[tuple[Currency, Currency], Decimal]:
        """Rate table keyed by currency pair, as the converter expects."""
        return {_parse_pair(key): rate for key, rate in self.pairs.items()}


def _parse_pair(key: str) -> tuple[Currency, Currency]:
    try:
        source, target = key.split("/")
        return Currency(source.strip().upper()), Currency(target.strip().upper())
    except ValueError:
        raise ValueError(f"Invalid currency pair {key!r}, expected e.g. 'USD/TWD'")


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expense records"
    )
    users_sheet_name: str = Field(
        default="Users",
        description="Name of the sheet for participant profiles"
    )

    @field_validator("credentials_path")
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before connecting."
            )
        return v


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings load lazily so a deployment without Google Sheets can
    still use the ledger and rates.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def rates(self) -> RateSettings:
        return RateSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Check which settings groups load cleanly.

    Returns {group: is_valid}, plus "<group>_error" messages for failures.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "rates", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
