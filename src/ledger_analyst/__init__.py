"""Ledger Analyst - LLM finance assistant over the general ledger."""

__version__ = "0.1.0"

from ledger_analyst.analyst import AnalysisResult, ConversationStore, FinancialAnalyst
from ledger_analyst.clients import ClaudeClient
from ledger_analyst.config import configure_logging, get_settings
from ledger_analyst.ledger.cache import BalanceCache
from ledger_analyst.ledger.workflows import BalanceWorkflows
from ledger_analyst.service import AnalystService
from ledger_analyst.tools import LedgerAPIClient, SheetsAPIClient
from ledger_analyst.tools.executor import ToolExecutor

__all__ = [
    # Version
    "__version__",
    # Analyst
    "AnalysisResult",
    "ConversationStore",
    "FinancialAnalyst",
    "AnalystService",
    # LLM Client
    "ClaudeClient",
    # Balances
    "BalanceCache",
    "BalanceWorkflows",
    # Tools
    "LedgerAPIClient",
    "SheetsAPIClient",
    "ToolExecutor",
    # Config
    "get_settings",
    "configure_logging",
]
