"""Configuration settings for the ledger analyst."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """A required credential or setting is missing."""

    def __init__(self, setting: str, message: str | None = None):
        super().__init__(message or f"{setting} is not configured")
        self.setting = setting


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Ledger (ERP) API
    ledger_api_url: str = Field(
        default="https://api.rillet.com", validation_alias="LEDGER_API_URL"
    )
    ledger_api_key: SecretStr | None = Field(default=None, validation_alias="LEDGER_API_KEY")
    ledger_timeout: float = Field(default=30.0, validation_alias="LEDGER_TIMEOUT")
    ledger_page_size: int = Field(default=100, validation_alias="LEDGER_PAGE_SIZE")
    ledger_max_pages: int = Field(default=500, validation_alias="LEDGER_MAX_PAGES")

    # Company-specific search term -> account code lists, as JSON
    account_code_lists: dict[str, list[str]] = Field(
        default_factory=dict, validation_alias="ACCOUNT_CODE_LISTS"
    )

    # Balance cache
    accounts_cache_ttl_seconds: float = Field(
        default=300.0, validation_alias="ACCOUNTS_CACHE_TTL_SECONDS"
    )
    balance_memory_ttl_seconds: float = Field(
        default=300.0, validation_alias="BALANCE_MEMORY_TTL_SECONDS"
    )
    balance_store_max_age_hours: float = Field(
        default=24.0, validation_alias="BALANCE_STORE_MAX_AGE_HOURS"
    )
    balance_store_history: int = Field(default=5, validation_alias="BALANCE_STORE_HISTORY")
    database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

    # Google Sheets
    google_sheets_api_key: SecretStr | None = Field(
        default=None, validation_alias="GOOGLE_SHEETS_API_KEY"
    )
    budget_sheet_id: str | None = Field(default=None, validation_alias="GOOGLE_BUDGET_SHEET_ID")
    financial_model_sheet_id: str | None = Field(
        default=None, validation_alias="GOOGLE_FINANCIAL_MODEL_SHEET_ID"
    )

    # LLM
    anthropic_api_key: SecretStr | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    claude_model: str = Field(default="claude-haiku-4-5", validation_alias="CLAUDE_MODEL")
    llm_max_tokens: int = Field(default=4096, validation_alias="LLM_MAX_TOKENS")
    llm_max_retries: int = Field(default=3, validation_alias="LLM_MAX_RETRIES")
    max_tool_iterations: int = Field(default=10, validation_alias="MAX_TOOL_ITERATIONS")

    # Conversations
    conversation_max_messages: int = Field(
        default=20, validation_alias="CONVERSATION_MAX_MESSAGES"
    )
    conversation_ttl_seconds: float = Field(
        default=3600.0, validation_alias="CONVERSATION_TTL_SECONDS"
    )
    sweep_interval_seconds: float = Field(default=600.0, validation_alias="SWEEP_INTERVAL_SECONDS")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
