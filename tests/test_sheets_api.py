"""Tests for the Google Sheets client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ledger_analyst.config import ConfigurationError
from ledger_analyst.tools.sheets_api import (
    SheetsAPIClient,
    SheetsAPIError,
    filter_budget_rows,
    rows_to_records,
)

BUDGET_ROWS = [
    ["Account", "Vendor", "Department", "Consolidated Rollup", "Jan 2025", "Feb 2025"],
    ["Software", "Acme", "Engineering", "Opex", "100", "110"],
    ["Software", "Globex", "Sales", "Opex", "50", ""],
    ["Subscription Revenue", "", "", "Revenue", "1000", "1200"],
]


@pytest.fixture
def client():
    return SheetsAPIClient(api_key="k", budget_sheet_id="budget-id", model_sheet_id="model-id")


def _response(status_code: int, payload: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


class TestRowHelpers:
    """Tests for the row filtering helpers."""

    def test_rows_to_records_pads_short_rows(self):
        """Test short rows are padded with empty strings."""
        headers, records = rows_to_records(BUDGET_ROWS)

        assert headers[0] == "Account"
        assert records[1]["Feb 2025"] is None
        assert records[2]["Vendor"] is None

    def test_rows_to_records_empty(self):
        """Test an empty range yields no records."""
        assert rows_to_records([]) == ([], [])

    def test_filter_by_vendor_and_department(self):
        """Test vendor and department filters are combined."""
        headers, records = rows_to_records(BUDGET_ROWS)

        rows = filter_budget_rows(headers, records, vendor="acme", department="eng")

        assert [r["Vendor"] for r in rows] == ["Acme"]

    def test_metric_matches_account_or_rollup(self):
        """Test the metric filter checks both account and rollup columns."""
        headers, records = rows_to_records(BUDGET_ROWS)

        assert len(filter_budget_rows(headers, records, metric="revenue")) == 1
        assert len(filter_budget_rows(headers, records, metric="opex")) == 2

    def test_account_filter_without_account_column_matches_nothing(self):
        """Test filtering on a missing column drops every row."""
        headers, records = rows_to_records([["Line", "Jan"], ["Software", "1"]])

        assert filter_budget_rows(headers, records, account="software") == []


class TestSheetsAPIClient:
    """Tests for SheetsAPIClient."""

    @pytest.mark.asyncio
    async def test_missing_key(self):
        """Test a missing API key raises ConfigurationError."""
        client = SheetsAPIClient(api_key="", budget_sheet_id="b")

        with pytest.raises(ConfigurationError):
            await client.get_values("b", "A:Z")

    @pytest.mark.asyncio
    async def test_get_budget_data(self, client):
        """Test budget rows are fetched and converted to records."""
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(200, {"values": BUDGET_ROWS}))
            mock_get.return_value = mock_http

            result = await client.get_budget_data(account="software", statement_type="pnl")

        assert result["row_count"] == 2
        assert result["total_rows_in_sheet"] == 3
        assert result["sheet_name"] == "Income Statement | Budget | Aleph"
        call = mock_http.get.call_args
        assert call.kwargs["params"]["key"] == "k"
        assert call.args[0].startswith("/budget-id/values/")

    @pytest.mark.asyncio
    async def test_budget_sheet_not_configured(self):
        """Test a missing budget sheet id raises ConfigurationError."""
        client = SheetsAPIClient(api_key="k", budget_sheet_id="", model_sheet_id="m")
        client.budget_sheet_id = None

        with pytest.raises(ConfigurationError):
            await client.get_budget_data(metric="revenue")

    @pytest.mark.asyncio
    async def test_get_financial_model_filters_any_cell(self, client):
        """Test the model filter matches text in any cell."""
        rows = [["Scenario", "Metric", "FY2025"], ["Base", "ARR", "10"], ["Upside", "ARR", "12"]]
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(200, {"values": rows}))
            mock_get.return_value = mock_http

            result = await client.get_financial_model("scenario", scenario="upside")

        assert result["row_count"] == 1
        assert result["results"][0]["fy2025"] == "12"

    @pytest.mark.asyncio
    async def test_http_error(self, client):
        """Test an HTTP error raises SheetsAPIError."""
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(403, {"error": "denied"}))
            mock_get.return_value = mock_http

            with pytest.raises(SheetsAPIError) as exc_info:
                await client.list_tabs("budget-id")

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_list_available_sheets(self, client):
        """Test tab titles are listed for the requested spreadsheet."""
        payload = {"sheets": [{"properties": {"title": "Metrics"}}]}
        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(200, payload))
            mock_get.return_value = mock_http

            result = await client.list_available_sheets("budget")

        assert result["available_sheets"] == {"budget": {"sheet_id": "budget-id", "tabs": ["Metrics"]}}
