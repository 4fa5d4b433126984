"""LLM client for the ledger analyst."""

from ledger_analyst.clients.claude import (
    ClaudeAPIError,
    ClaudeClient,
    ClaudeResponse,
    ErrorKind,
)

__all__ = [
    "ClaudeAPIError",
    "ClaudeClient",
    "ClaudeResponse",
    "ErrorKind",
]
