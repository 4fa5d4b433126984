"""API clients and LLM tool definitions for the ledger analyst.

``ToolExecutor`` lives in ``ledger_analyst.tools.executor``; it depends on the
balance workflows, which in turn depend on the clients exported here.
"""

from ledger_analyst.tools.ledger_api import LedgerAPIClient, LedgerAPIError, parse_month
from ledger_analyst.tools.sheets_api import SheetsAPIClient, SheetsAPIError
from ledger_analyst.tools.definitions import (
    ALL_TOOLS,
    BALANCE_TOOLS,
    LEDGER_API_TOOLS,
    SHEETS_TOOLS,
)

__all__ = [
    # API Clients
    "LedgerAPIClient",
    "LedgerAPIError",
    "SheetsAPIClient",
    "SheetsAPIError",
    "parse_month",
    # Tool Definitions
    "ALL_TOOLS",
    "BALANCE_TOOLS",
    "LEDGER_API_TOOLS",
    "SHEETS_TOOLS",
]
