"""Pytest configuration and fixtures."""

import os
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("LEDGER_API_KEY", "ledger-test-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test")
os.environ.pop("DATABASE_URL", None)

from ledger_analyst.ledger.models import Account, JournalEntryPage  # noqa: E402


class FakeClock:
    """Manually advanced UTC clock for TTL tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_entry(*items: tuple[str, str, str]) -> dict:
    """Build a raw journal entry from (account_code, side, amount) triples."""
    return {
        "id": "je-1",
        "items": [
            {"account_code": code, "side": side, "amount": {"amount": amount, "currency": "USD"}}
            for code, side, amount in items
        ],
    }


def make_page(entries: list[dict], next_cursor: str | None = None) -> JournalEntryPage:
    return JournalEntryPage.from_api(
        {"journal_entries": entries, "pagination": {"next_cursor": next_cursor}}
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.get = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_accounts_response():
    """Mock ``GET /accounts`` response."""
    return {
        "accounts": [
            {"code": "11001", "name": "Operating Cash", "type": "ASSET", "subtype": "Cash", "status": "ACTIVE"},
            {"code": "11002", "name": "SVB Checking", "type": "ASSET", "subtype": "Bank", "status": "ACTIVE"},
            {"code": "11003", "name": "Money in Transit", "type": "ASSET", "subtype": "Cash", "status": "ACTIVE"},
            {"code": "11004", "name": "Stripe Clearing", "type": "ASSET", "subtype": "Bank", "status": "ACTIVE"},
            {"code": "11005", "name": "Other Receivables", "type": "ASSET", "subtype": "Cash", "status": "ACTIVE"},
            {"code": "11006", "name": "Non-Cash Reserve", "type": "ASSET", "subtype": "Cash", "status": "ACTIVE"},
            {"code": "11007", "name": "Old Petty Cash", "type": "ASSET", "subtype": "Cash", "status": "INACTIVE"},
            {"code": "12000", "name": "Accounts Receivable", "type": "ASSET", "subtype": "Accounts Receivable", "status": "ACTIVE"},
            {"code": "40000", "name": "Subscription Revenue", "type": "REVENUE", "subtype": "Revenue", "status": "ACTIVE"},
            {"code": "60100", "name": "Payroll Expense", "type": "EXPENSE", "subtype": "Operating Expense", "status": "ACTIVE"},
            {"code": "60200", "name": "Software", "type": "EXPENSE", "subtype": "Operating Expense", "status": "ACTIVE"},
        ]
    }


@pytest.fixture
def accounts(mock_accounts_response):
    return [Account.from_api(raw) for raw in mock_accounts_response["accounts"]]


@pytest.fixture
def journal_pages():
    """Two pages: a 1000 sale collected in cash, then payroll paid from the bank."""
    return [
        make_page(
            [
                make_entry(("12000", "DEBIT", "1000.00"), ("40000", "CREDIT", "1000.00")),
                make_entry(("11001", "DEBIT", "1000.00"), ("12000", "CREDIT", "1000.00")),
            ],
            next_cursor="cursor-2",
        ),
        make_page(
            [make_entry(("60100", "DEBIT", "250.50"), ("11002", "CREDIT", "250.50"))],
        ),
    ]


@pytest.fixture
def ledger_client(accounts, journal_pages):
    """A LedgerAPIClient stand-in serving the fixture accounts and pages."""
    client = AsyncMock()
    client.list_accounts = AsyncMock(return_value=accounts)
    client.get_journal_entries_page = AsyncMock(side_effect=list(journal_pages))
    client.is_configured = True
    return client
