"""Google Sheets client for budget and financial model lookups."""

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from ledger_analyst.config import ConfigurationError, get_settings

logger = structlog.get_logger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"

DEFAULT_BUDGET_TAB = "Income Statement | Budget | Aleph"
BUDGET_TABS = {
    "income_statement": DEFAULT_BUDGET_TAB,
    "income": DEFAULT_BUDGET_TAB,
    "is": DEFAULT_BUDGET_TAB,
    "pl": DEFAULT_BUDGET_TAB,
    "pnl": DEFAULT_BUDGET_TAB,
    "balance_sheet": "Balance Sheet | Budget | Aleph",
    "balance": "Balance Sheet | Budget | Aleph",
    "bs": "Balance Sheet | Budget | Aleph",
    "metrics": "Metrics",
    "kpis": "Metrics",
    "operational": "Metrics",
}
MODEL_TABS = {
    "projection": "Projections",
    "scenario": "Scenarios",
    "assumptions": "Assumptions",
    "summary": "Summary",
    "kpis": "KPIs",
}
MAX_BUDGET_ROWS = 200
MAX_MODEL_ROWS = 100


class SheetsAPIError(Exception):
    """Base exception for spreadsheet API errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def rows_to_records(rows: list[list[Any]], lower_headers: bool = False) -> tuple[list[str], list[dict[str, Any]]]:
    """Turn a header row plus data rows into dicts keyed by header."""
    if not rows:
        return [], []
    headers = [str(h).strip() if h is not None else "" for h in rows[0]]
    if lower_headers:
        headers = [h.lower() for h in headers]
    records = []
    for row in rows[1:]:
        records.append({h: (row[i] if i < len(row) and row[i] != "" else None) for i, h in enumerate(headers)})
    return headers, records


def find_column(headers: list[str], exact: str | None = None, contains: str | None = None) -> str | None:
    """Find a header by exact (case-insensitive) name or by substring."""
    for header in headers:
        lowered = header.lower()
        if exact is not None and lowered == exact:
            return header
        if contains is not None and contains in lowered:
            return header
    return None


def _cell_contains(record: dict[str, Any], column: str | None, needle: str) -> bool:
    if column is None:
        return False
    return needle.lower() in str(record.get(column) or "").lower()


def filter_budget_rows(
    headers: list[str],
    records: list[dict[str, Any]],
    metric: str | None = None,
    department: str | None = None,
    account: str | None = None,
    vendor: str | None = None,
    rollup: str | None = None,
) -> list[dict[str, Any]]:
    """Filter budget rows by the columns the budget export is known to carry.

    Columns are located heuristically: "Account" and "Vendor" by exact name,
    department and "Consolidated Rollup" by substring. A filter on a column the
    sheet lacks is ignored, except ``account``, which then matches nothing.
    A ``metric`` matches against either the account or the rollup column.
    Period filtering is left to the caller since periods are columns.
    """
    account_col = find_column(headers, exact="account")
    vendor_col = find_column(headers, exact="vendor")
    dept_col = find_column(headers, contains="department")
    rollup_col = find_column(headers, contains="consolidated rollup")

    def keep(record: dict[str, Any]) -> bool:
        if account and not _cell_contains(record, account_col, account):
            return False
        if vendor and vendor_col and not _cell_contains(record, vendor_col, vendor):
            return False
        if department and dept_col and not _cell_contains(record, dept_col, department):
            return False
        if rollup and rollup_col and not _cell_contains(record, rollup_col, rollup):
            return False
        if metric and not (
            _cell_contains(record, account_col, metric) or _cell_contains(record, rollup_col, metric)
        ):
            return False
        return True

    return [r for r in records if keep(r)]


def filter_any_cell(records: list[dict[str, Any]], needle: str | None) -> list[dict[str, Any]]:
    if not needle:
        return records
    lowered = needle.lower()
    return [r for r in records if any(lowered in str(v).lower() for v in r.values() if v is not None)]


class SheetsAPIClient:
    """Async read-only client for the Sheets v4 REST API using an API key."""

    def __init__(
        self,
        api_key: str | None = None,
        budget_sheet_id: str | None = None,
        model_sheet_id: str | None = None,
        base_url: str = SHEETS_API_URL,
        timeout: float = 30.0,
    ):
        settings = get_settings()
        if api_key is None and settings.google_sheets_api_key is not None:
            api_key = settings.google_sheets_api_key.get_secret_value()
        self._api_key = api_key
        self.budget_sheet_id = budget_sheet_id or settings.budget_sheet_id
        self.model_sheet_id = model_sheet_id or settings.financial_model_sheet_id
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self._api_key:
            raise ConfigurationError("GOOGLE_SHEETS_API_KEY", "Google Sheets not configured")
        client = await self._get_client()
        try:
            response = await client.get(path, params={**(params or {}), "key": self._api_key})
        except httpx.RequestError as e:
            raise SheetsAPIError(f"Request failed: {e}") from e
        if response.status_code >= 400:
            raise SheetsAPIError(
                f"Sheets API error {response.status_code}",
                status_code=response.status_code,
                details=response.text[:500],
            )
        data = response.json()
        return data if isinstance(data, dict) else {}

    async def get_values(self, sheet_id: str, range_: str) -> list[list[Any]]:
        """Read a cell range, e.g. ``'Metrics'!A:Z``."""
        data = await self._get(f"/{sheet_id}/values/{quote(range_, safe='')}")
        return data.get("values") or []

    async def list_tabs(self, sheet_id: str) -> list[str]:
        data = await self._get(f"/{sheet_id}", params={"fields": "sheets.properties.title"})
        return [s.get("properties", {}).get("title", "") for s in data.get("sheets", [])]

    # === Lookups used as analyst tools ===

    async def get_budget_data(
        self,
        metric: str | None = None,
        period: str | None = None,
        department: str | None = None,
        sheet_name: str | None = None,
        account: str | None = None,
        vendor: str | None = None,
        rollup: str | None = None,
        statement_type: str | None = None,
    ) -> dict[str, Any]:
        if not self.budget_sheet_id:
            raise ConfigurationError("GOOGLE_BUDGET_SHEET_ID", "Budget sheet not configured")

        tab = sheet_name or BUDGET_TABS.get((statement_type or "").lower()) or DEFAULT_BUDGET_TAB
        rows = await self.get_values(self.budget_sheet_id, f"'{tab}'!A:ZZ")
        query = {
            "metric": metric,
            "period": period,
            "department": department,
            "account": account,
            "vendor": vendor,
            "rollup": rollup,
            "statement_type": statement_type,
        }
        if not rows:
            return {"error": f"No data found in budget sheet tab: {tab}", "query": query}

        headers, records = rows_to_records(rows)
        filtered = filter_budget_rows(
            headers, records, metric=metric, department=department,
            account=account, vendor=vendor, rollup=rollup,
        )
        logger.info("budget_rows_filtered", tab=tab, matched=len(filtered), total=len(records))
        return {
            "source": "Google Sheets - Budget",
            "sheet_name": tab,
            "query": query,
            "results": filtered[:MAX_BUDGET_ROWS],
            "row_count": len(filtered),
            "total_rows_in_sheet": len(records),
            "headers": headers,
            "hint": "Month columns contain budget amounts. Period filtering is by column.",
        }

    async def get_financial_model(
        self,
        data_type: str,
        scenario: str | None = None,
        metric: str | None = None,
        period: str | None = None,
    ) -> dict[str, Any]:
        if not self.model_sheet_id:
            raise ConfigurationError(
                "GOOGLE_FINANCIAL_MODEL_SHEET_ID", "Financial model sheet not configured"
            )

        tab = MODEL_TABS.get(data_type, "Summary")
        rows = await self.get_values(self.model_sheet_id, f"{tab}!A:Z")
        query = {"data_type": data_type, "scenario": scenario, "metric": metric, "period": period}
        if not rows:
            return {"error": f"No data found in {data_type} sheet", "query": query}

        headers, records = rows_to_records(rows, lower_headers=True)
        for needle in (scenario, metric, period):
            records = filter_any_cell(records, needle)
        return {
            "source": "Google Sheets - Financial Model",
            "data_type": data_type,
            "scenario": scenario or "all",
            "query": query,
            "results": records[:MAX_MODEL_ROWS],
            "row_count": len(records),
            "headers": headers,
        }

    async def list_available_sheets(self, sheet_type: str = "all") -> dict[str, Any]:
        sheets: dict[str, Any] = {}
        if sheet_type in ("budget", "all") and self.budget_sheet_id:
            sheets["budget"] = {
                "sheet_id": self.budget_sheet_id,
                "tabs": await self.list_tabs(self.budget_sheet_id),
            }
        if sheet_type in ("model", "all") and self.model_sheet_id:
            sheets["model"] = {
                "sheet_id": self.model_sheet_id,
                "tabs": await self.list_tabs(self.model_sheet_id),
            }
        return {"source": "Google Sheets", "available_sheets": sheets}
