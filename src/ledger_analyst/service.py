"""Wires the analyst's components together from settings."""

import asyncio
import contextlib
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ledger_analyst.analyst import AnalysisResult, ConversationStore, FinancialAnalyst
from ledger_analyst.clients.claude import ClaudeClient
from ledger_analyst.config import ConfigurationError, FlatSettings, get_settings
from ledger_analyst.ledger.cache import BalanceCache
from ledger_analyst.ledger.directory import AccountDirectory
from ledger_analyst.ledger.matcher import AccountMatcher, build_search_terms
from ledger_analyst.ledger.reader import LedgerReader
from ledger_analyst.ledger.store import SnapshotStore
from ledger_analyst.ledger.workflows import BalanceWorkflows
from ledger_analyst.tools.executor import ToolExecutor
from ledger_analyst.tools.ledger_api import LedgerAPIClient
from ledger_analyst.tools.sheets_api import SheetsAPIClient

logger = structlog.get_logger(__name__)


class AnalystService:
    """Owns the API clients, the balance cache and the analyst for one process.

    Use as an async context manager so HTTP clients and the database engine are
    released on exit.
    """

    def __init__(
        self,
        settings: FlatSettings | None = None,
        llm_client: ClaudeClient | None = None,
    ):
        self.settings = settings or get_settings()
        s = self.settings

        self.ledger = LedgerAPIClient(
            base_url=s.ledger_api_url,
            api_key=s.ledger_api_key.get_secret_value() if s.ledger_api_key else None,
            timeout=s.ledger_timeout,
        )
        self.sheets = (
            SheetsAPIClient(
                api_key=s.google_sheets_api_key.get_secret_value(),
                budget_sheet_id=s.budget_sheet_id,
                model_sheet_id=s.financial_model_sheet_id,
            )
            if s.google_sheets_api_key
            else None
        )
        self.store = (
            SnapshotStore(s.database_url, history=s.balance_store_history)
            if s.database_url
            else None
        )

        self.directory = AccountDirectory(self.ledger, ttl_seconds=s.accounts_cache_ttl_seconds)
        self.reader = LedgerReader(
            self.ledger, page_size=s.ledger_page_size, max_pages=s.ledger_max_pages
        )
        self.cache = BalanceCache(
            self.directory,
            self.reader,
            store=self.store,
            memory_ttl_seconds=s.balance_memory_ttl_seconds,
            store_max_age_hours=s.balance_store_max_age_hours,
        )
        self.matcher = AccountMatcher(build_search_terms(s.account_code_lists))
        self.workflows = BalanceWorkflows(self.directory, self.cache, self.matcher)
        self.tool_executor = ToolExecutor(self.workflows, self.ledger, self.sheets)

        if llm_client is None:
            try:
                llm_client = ClaudeClient(
                    api_key=s.anthropic_api_key.get_secret_value() if s.anthropic_api_key else None,
                    model=s.claude_model,
                    max_tokens=s.llm_max_tokens,
                    max_retries=s.llm_max_retries,
                )
            except ConfigurationError as e:
                logger.warning("llm_not_configured", setting=e.setting)
        self.conversations = ConversationStore(
            max_messages=s.conversation_max_messages,
            ttl_seconds=s.conversation_ttl_seconds,
        )
        self.analyst = FinancialAnalyst(
            llm_client,
            self.tool_executor,
            conversations=self.conversations,
            max_iterations=s.max_tool_iterations,
        )

        self._sweep_task: asyncio.Task[None] | None = None
        self._logger = logger.bind(component="analyst_service")

    async def __aenter__(self) -> "AnalystService":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    async def initialize(self) -> None:
        """Create the snapshot table and start the periodic sweep."""
        if self.store is not None:
            try:
                await asyncio.to_thread(self.store.init_schema)
            except SQLAlchemyError as e:
                # Saving a snapshot creates the table again, so this is not fatal
                self._logger.error("balance_store_init_failed", error=str(e))

        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self.sweep_forever())

    async def shutdown(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        await self.ledger.close()
        if self.sheets is not None:
            await self.sheets.close()
        if self.store is not None:
            self.store.dispose()
        self._logger.info("service_shutdown")

    async def ask(self, question: str, thread_id: str | None = None) -> AnalysisResult:
        return await self.analyst.analyze(question, thread_id=thread_id)

    def check_configuration(self) -> dict[str, bool]:
        """Which integrations have credentials."""
        s = self.settings
        return {
            "anthropic": s.anthropic_api_key is not None,
            "ledger": self.ledger.is_configured,
            "google_sheets": s.google_sheets_api_key is not None,
            "budget_sheet": bool(s.budget_sheet_id),
            "model_sheet": bool(s.financial_model_sheet_id),
            "database": self.store is not None,
        }

    def sweep(self) -> None:
        """Drop expired conversations and an expired in-memory balance entry."""
        removed = self.conversations.sweep()
        cache_dropped = self.cache.sweep()
        self._logger.debug("sweep_done", conversations_removed=removed, cache_dropped=cache_dropped)

    async def sweep_forever(self, interval_seconds: float | None = None) -> None:
        """Sweep on a fixed interval until cancelled."""
        interval = interval_seconds or self.settings.sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.sweep()
