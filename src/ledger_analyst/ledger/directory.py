"""Chart of accounts held in memory for a short TTL."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from ledger_analyst.config import get_settings
from ledger_analyst.ledger.models import Account
from ledger_analyst.tools.ledger_api import LedgerAPIClient

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class AccountDirectory:
    """Caches ``GET /accounts`` so matching and balance lookups share one fetch."""

    def __init__(
        self,
        client: LedgerAPIClient,
        ttl_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        settings = get_settings()
        self._client = client
        self._ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.accounts_cache_ttl_seconds
        )
        self._clock = clock
        self._accounts: list[Account] | None = None
        self._fetched_at: datetime | None = None

    async def get_accounts(self, force_refresh: bool = False) -> list[Account]:
        now = self._clock()
        if (
            not force_refresh
            and self._accounts is not None
            and self._fetched_at is not None
            and now - self._fetched_at < self._ttl
        ):
            return self._accounts

        self._accounts = await self._client.list_accounts()
        self._fetched_at = now
        logger.info("accounts_cached", count=len(self._accounts))
        return self._accounts

    def invalidate(self) -> None:
        self._accounts = None
        self._fetched_at = None
