"""Tests for configuration settings."""

import pytest

from ledger_analyst.config.settings import ConfigurationError, FlatSettings, get_settings


def test_settings_loads_from_env():
    """Test that settings loads from environment variables."""
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.ledger_api_key.get_secret_value() == "ledger-test-key"
    assert settings.anthropic_api_key.get_secret_value() == "sk-ant-test"


def test_settings_has_defaults():
    """Test that settings has sensible defaults."""
    get_settings.cache_clear()
    settings = get_settings()

    assert settings.ledger_api_url == "https://api.rillet.com"
    assert settings.ledger_page_size == 100
    assert settings.ledger_max_pages == 500
    assert settings.balance_memory_ttl_seconds == 300.0
    assert settings.balance_store_max_age_hours == 24.0
    assert settings.balance_store_history == 5
    assert settings.database_url is None
    assert settings.claude_model == "claude-haiku-4-5"
    assert settings.max_tool_iterations == 10
    assert settings.llm_max_retries == 3
    assert settings.conversation_max_messages == 20
    assert settings.conversation_ttl_seconds == 3600.0


def test_account_code_lists_parse_from_json(monkeypatch):
    """Test ACCOUNT_CODE_LISTS is parsed from JSON."""
    monkeypatch.setenv("ACCOUNT_CODE_LISTS", '{"slw": ["21500", "21510"]}')

    settings = FlatSettings()

    assert settings.account_code_lists == {"slw": ["21500", "21510"]}


def test_get_settings_is_cached():
    """Test get_settings returns one cached instance."""
    get_settings.cache_clear()
    assert get_settings() is get_settings()


def test_configuration_error_names_setting():
    """Test ConfigurationError carries the setting name."""
    error = ConfigurationError("LEDGER_API_KEY")

    assert error.setting == "LEDGER_API_KEY"
    assert "LEDGER_API_KEY" in str(error)


@pytest.mark.parametrize("level", ["DEBUG", "WARNING"])
def test_log_level_from_env(monkeypatch, level):
    """Test LOG_LEVEL is read from the environment."""
    monkeypatch.setenv("LOG_LEVEL", level)

    assert FlatSettings().log_level == level
