"""Tool executor that bridges LLM tool calls to the balance workflows and APIs."""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from ledger_analyst.config import ConfigurationError
from ledger_analyst.ledger.workflows import BalanceWorkflows
from ledger_analyst.tools.ledger_api import LedgerAPIClient, LedgerAPIError
from ledger_analyst.tools.sheets_api import SheetsAPIClient, SheetsAPIError

logger = structlog.get_logger(__name__)

ToolHandler = Callable[..., Awaitable[Any]]


class ToolExecutionError(Exception):
    """Error during tool execution."""

    def __init__(self, tool_name: str, message: str, details: Any = None):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
        self.details = details


class ToolExecutor:
    """Executes LLM tool calls.

    ``execute`` never raises: every failure comes back as
    ``{"error": ..., "is_error": True}`` so one bad tool call cannot end the
    analyst loop.
    """

    def __init__(
        self,
        workflows: BalanceWorkflows,
        ledger: LedgerAPIClient,
        sheets: SheetsAPIClient | None = None,
    ):
        self.workflows = workflows
        self.ledger = ledger
        self.sheets = sheets
        self._tool_handlers: dict[str, ToolHandler] = {
            # Balances
            "account_balance": self._account_balance,
            "list_account_categories": self._list_account_categories,
            "get_trial_balance": self._get_trial_balance,
            "get_cache_status": self._get_cache_status,
            # Ledger API
            "call_ledger_api": self._call_ledger_api,
            "get_arr_waterfall": self._get_arr_waterfall,
            # Spreadsheets
            "get_budget_data": self._get_budget_data,
            "get_financial_model": self._get_financial_model,
            "list_available_sheets": self._list_available_sheets,
        }

    @property
    def available_tools(self) -> list[str]:
        return list(self._tool_handlers)

    def _get_handler(self, tool_name: str) -> ToolHandler:
        handler = self._tool_handlers.get(tool_name)
        if not handler:
            raise ToolExecutionError(tool_name, f"Unknown tool: {tool_name}")
        return handler

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a tool call and return its JSON-serializable result."""
        try:
            handler = self._get_handler(tool_name)
        except ToolExecutionError as e:
            logger.warning("unknown_tool", tool=tool_name)
            return {
                "error": str(e),
                "is_error": True,
                "tool_name": tool_name,
                "available_tools": self.available_tools,
            }

        logger.info("executing_tool", tool=tool_name, args=arguments)

        try:
            result = await handler(**arguments)
        except ConfigurationError as e:
            logger.warning("tool_not_configured", tool=tool_name, setting=e.setting)
            return {"error": str(e), "is_error": True, "tool_name": tool_name}
        except (LedgerAPIError, SheetsAPIError) as e:
            logger.warning(
                "tool_api_error",
                tool=tool_name,
                status=e.status_code,
                details=e.details,
            )
            return {
                "error": str(e),
                "is_error": True,
                "tool_name": tool_name,
                "status_code": e.status_code,
                "details": e.details,
            }
        except Exception as e:
            logger.exception("tool_execution_error", tool=tool_name)
            return {
                "error": f"Tool execution failed: {e}",
                "is_error": True,
                "tool_name": tool_name,
                "input": arguments,
            }

        is_error = isinstance(result, dict) and result.get("is_error", False)
        logger.info("tool_executed", tool=tool_name, success=not is_error)
        return result if isinstance(result, dict) else {"result": result}

    # === Balance Handlers ===

    async def _account_balance(
        self,
        search: str | None = None,
        type: str | None = None,
        subtype: str | None = None,
        codes: list[str] | None = None,
    ) -> dict[str, Any]:
        return await self.workflows.account_balance(
            search=search, type=type, subtype=subtype, codes=codes
        )

    async def _list_account_categories(self) -> dict[str, Any]:
        return await self.workflows.list_account_categories()

    async def _get_trial_balance(
        self, account_type: str | None = None, as_of_date: str | None = None
    ) -> dict[str, Any]:
        return await self.workflows.trial_balance(account_type=account_type, as_of_date=as_of_date)

    async def _get_cache_status(self) -> dict[str, Any]:
        return await self.workflows.get_cache_status()

    # === Ledger API Handlers ===

    async def _call_ledger_api(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        method: str = "GET",
    ) -> dict[str, Any]:
        if method.upper() != "GET":
            return {
                "error": "Only read-only GET requests are allowed",
                "is_error": True,
                "tool_name": "call_ledger_api",
            }
        result = await self.ledger.get(endpoint, params=params)
        return {"endpoint": endpoint, "params": params or {}, "results": result}

    async def _get_arr_waterfall(
        self,
        month: str | None = None,
        status: str | None = None,
        breakdown: str | None = None,
        subsidiary: str | None = None,
    ) -> dict[str, Any]:
        return await self.ledger.get_arr_waterfall(
            month=month, status=status, breakdown=breakdown, subsidiary=subsidiary
        )

    # === Spreadsheet Handlers ===

    def _require_sheets(self) -> SheetsAPIClient:
        if self.sheets is None:
            raise ConfigurationError("GOOGLE_SHEETS_API_KEY", "Google Sheets not configured")
        return self.sheets

    async def _get_budget_data(self, **query: Any) -> dict[str, Any]:
        return await self._require_sheets().get_budget_data(**query)

    async def _get_financial_model(self, **query: Any) -> dict[str, Any]:
        return await self._require_sheets().get_financial_model(**query)

    async def _list_available_sheets(self, sheet_type: str = "all") -> dict[str, Any]:
        return await self._require_sheets().list_available_sheets(sheet_type=sheet_type)
