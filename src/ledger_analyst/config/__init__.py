"""Configuration module for the ledger analyst."""

from ledger_analyst.config.logging import configure_logging
from ledger_analyst.config.settings import ConfigurationError, FlatSettings, get_settings

__all__ = [
    "ConfigurationError",
    "FlatSettings",
    "get_settings",
    "configure_logging",
]
