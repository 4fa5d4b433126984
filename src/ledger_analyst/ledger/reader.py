"""Cursor-paginated journal entry scan with per-account aggregation."""

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import structlog

from ledger_analyst.config import get_settings
from ledger_analyst.ledger.models import JournalEntryLine, LineSide
from ledger_analyst.tools.ledger_api import LedgerAPIClient

logger = structlog.get_logger(__name__)

PROGRESS_EVERY_PAGES = 20


@dataclass
class LedgerTotals:
    """Running debit/credit sums for one account code."""

    debits: Decimal = Decimal("0")
    credits: Decimal = Decimal("0")
    transactions: int = 0

    def add(self, line: JournalEntryLine) -> None:
        if line.side is LineSide.DEBIT:
            self.debits += line.amount
        elif line.side is LineSide.CREDIT:
            self.credits += line.amount
        self.transactions += 1


@dataclass
class LedgerScan:
    """Result of walking the journal entry pages."""

    totals: dict[str, LedgerTotals] = field(default_factory=dict)
    pages_fetched: int = 0
    entries_scanned: int = 0
    truncated: bool = False


def aggregate_lines(
    lines: Iterable[JournalEntryLine],
    totals: dict[str, LedgerTotals] | None = None,
) -> dict[str, LedgerTotals]:
    """Sum lines into per-account totals, optionally on top of existing ones."""
    totals = {} if totals is None else totals
    for line in lines:
        totals.setdefault(line.account_code, LedgerTotals()).add(line)
    return totals


class LedgerReader:
    """Walks every journal entry page and aggregates line items by account."""

    def __init__(
        self,
        client: LedgerAPIClient,
        page_size: int | None = None,
        max_pages: int | None = None,
    ):
        settings = get_settings()
        self._client = client
        self.page_size = page_size or settings.ledger_page_size
        self.max_pages = max_pages or settings.ledger_max_pages

    async def scan(self, as_of: date | None = None) -> LedgerScan:
        """Fetch pages until the cursor runs out or ``max_pages`` is reached.

        Hitting ``max_pages`` with a cursor still pending is not an error; the
        partial aggregate comes back with ``truncated`` set.
        """
        scan = LedgerScan()
        cursor: str | None = None
        created_at_max = as_of.isoformat() if as_of else None
        started = time.monotonic()

        while True:
            page = await self._client.get_journal_entries_page(
                cursor=cursor,
                limit=self.page_size,
                created_at_max=created_at_max,
            )
            scan.pages_fetched += 1
            scan.entries_scanned += page.entry_count
            aggregate_lines(page.lines, scan.totals)
            cursor = page.next_cursor

            if scan.pages_fetched % PROGRESS_EVERY_PAGES == 0:
                logger.info(
                    "ledger_scan_progress",
                    pages=scan.pages_fetched,
                    entries=scan.entries_scanned,
                    elapsed_s=round(time.monotonic() - started),
                )

            if not cursor:
                break
            if scan.pages_fetched >= self.max_pages:
                scan.truncated = True
                logger.warning(
                    "ledger_scan_truncated",
                    max_pages=self.max_pages,
                    entries=scan.entries_scanned,
                )
                break

        logger.info(
            "ledger_scan_finished",
            pages=scan.pages_fetched,
            entries=scan.entries_scanned,
            accounts=len(scan.totals),
            truncated=scan.truncated,
            elapsed_s=round(time.monotonic() - started),
        )
        return scan
