"""
Finance Tracker settings.

Every tunable is read from the environment (or a .env file) through
pydantic-settings. Each group has its own env prefix: LEDGER_,
GOOGLE_SHEETS_ and GEMINI_.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger, account and system clock behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    auto_advance_to_real_date: bool = Field(
        default=True,
        description=(
            "Move a stale system month/year to the real calendar month on load. "
            "Disable to keep a reporting period chosen in an earlier session."
        )
    )
    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Document store backend"
    )

    # Display names for the fixed account ids
    primary_account_name: str = Field(
        default="Main Account",
        min_length=1,
        description="Display name of the 'primary' account"
    )
    cash_account_name: str = Field(
        default="Cash",
        min_length=1,
        description="Display name of the 'cash' account"
    )

    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many transactions the dashboard summary lists"
    )

    @property
    def account_names(self) -> dict[str, str]:
        """Lookup table from account id to display name."""
        return {
            "primary": self.primary_account_name,
            "cash": self.cash_account_name,
        }


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per document collection
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    budgets_sheet_name: str = Field(
        default="Budgets",
        description="Name of the sheet for budget goals"
    )
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet for account balances"
    )
    settings_sheet_name: str = Field(
        default="Settings",
        description="Name of the sheet holding the system month/year"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing file only warns; it may be mounted after start-up."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v

    def sheet_name_for(self, collection: str) -> str:
        """Map a document collection to its worksheet title."""
        names = {
            "transactions": self.transactions_sheet_name,
            "budgets": self.budgets_sheet_name,
            "accounts": self.accounts_sheet_name,
            "settings": self.settings_sheet_name,
        }
        try:
            return names[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (category suggestions)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=256,
        ge=64,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class Settings(BaseSettings):
    """Entry point to the settings groups. Groups are built on access."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()


@lru_cache()
def get_settings() -> Settings:
    """The process-wide Settings; call get_settings.cache_clear() after changing the environment."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to build every settings group.

    Returns {group: ok} plus a {group}_error message for each failure.
    A missing Gemini key is expected when suggestions are not used.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "google_sheets", "gemini"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
