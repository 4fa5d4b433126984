"""Ledger (ERP) API client with bearer-key authentication."""

import re
from datetime import UTC, date, datetime
from typing import Any, cast

import httpx
import structlog

from ledger_analyst.config import ConfigurationError, get_settings
from ledger_analyst.ledger.models import Account, JournalEntryPage

logger = structlog.get_logger(__name__)

_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")


class LedgerAPIError(Exception):
    """Base exception for ledger API errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def parse_month(period: str, today: date | None = None) -> str:
    """Turn a free-text period into ``YYYY-MM``.

    Understands month names ("Dec 2024"), ISO months ("2024-12") and quarters
    ("Q3 2024", which maps to the quarter's last month). Anything else falls
    back to the current month.
    """
    today = today or datetime.now(UTC).date()
    lowered = period.lower()

    year_match = re.search(r"(\d{4})", lowered)
    for index, month in enumerate(_MONTHS):
        if month in lowered:
            year = int(year_match.group(1)) if year_match else today.year
            return f"{year}-{index + 1:02d}"

    iso_match = re.search(r"(\d{4})-(\d{2})", period)
    if iso_match:
        return f"{iso_match.group(1)}-{iso_match.group(2)}"

    quarter_match = re.search(r"q([1-4])\s*(\d{4})?", lowered)
    if quarter_match:
        year = int(quarter_match.group(2)) if quarter_match.group(2) else today.year
        return f"{year}-{int(quarter_match.group(1)) * 3:02d}"

    return f"{today.year}-{today.month:02d}"


class LedgerAPIClient:
    """Async client for the ledger API.

    Requests are not retried: a failed page aborts whatever scan asked for it.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.ledger_api_url).rstrip("/")
        if api_key is None and settings.ledger_api_key is not None:
            api_key = settings.ledger_api_key.get_secret_value()
        self._api_key = api_key
        self._timeout = timeout or settings.ledger_timeout

        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LedgerAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        if not self._api_key:
            raise ConfigurationError("LEDGER_API_KEY", "Ledger API key not configured")
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    # === Generic Request Methods ===

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | list[Any]:
        """Make an authenticated API request."""
        headers = self._get_headers()
        client = await self._get_client()

        if not path.startswith("/"):
            path = f"/{path}"
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}

        logger.debug("ledger_request", method=method, path=path, params=clean_params)

        try:
            response = await client.request(
                method=method,
                url=path,
                params=clean_params,
                headers=headers,
            )
        except httpx.RequestError as e:
            raise LedgerAPIError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            raise LedgerAPIError(
                f"Ledger API error {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        return cast(dict[str, Any] | list[Any], response.json() if response.content else {})

    async def get(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[Any]:
        """Make GET request."""
        return await self._request("GET", path, params=params)

    # === Chart of Accounts ===

    async def list_accounts(self) -> list[Account]:
        """Fetch the full chart of accounts."""
        result = await self.get("/accounts")
        raw_accounts = result.get("accounts") if isinstance(result, dict) else result
        accounts = [
            Account.from_api(raw)
            for raw in raw_accounts or []
            if isinstance(raw, dict) and raw.get("code")
        ]
        logger.info("accounts_fetched", count=len(accounts))
        return accounts

    # === Journal Entries ===

    async def get_journal_entries_page(
        self,
        cursor: str | None = None,
        limit: int = 100,
        created_at_max: str | None = None,
    ) -> JournalEntryPage:
        """Fetch one cursor page of journal entries."""
        result = await self.get(
            "/journal-entries",
            params={"limit": limit, "cursor": cursor, "created_at_max": created_at_max},
        )
        if not isinstance(result, dict):
            raise LedgerAPIError("Invalid journal entries response format")
        return JournalEntryPage.from_api(result)

    # === Reports ===

    async def get_arr_waterfall(
        self,
        month: str | None = None,
        status: str | None = None,
        breakdown: str | None = None,
        subsidiary: str | None = None,
    ) -> dict[str, Any]:
        """Get the ARR waterfall report for a month."""
        params = {
            "month": parse_month(month) if month else None,
            "status": status,
            "breakdown": breakdown,
            "subsidiary": subsidiary,
        }
        result = await self.get("/reports/arr-waterfall", params=params)
        return {
            "month": params["month"],
            "filters": {"status": status, "breakdown": breakdown, "subsidiary": subsidiary},
            "results": result,
        }
