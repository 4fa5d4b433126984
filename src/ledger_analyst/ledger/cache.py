"""Layered balance cache: process memory, then the snapshot store, then the ledger.

A cold computation always covers every account in the chart so that any later,
narrower query is served from the cache. Entries are replaced wholesale, never
patched.
"""

import asyncio
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ledger_analyst.config import get_settings
from ledger_analyst.ledger.directory import AccountDirectory, utc_now
from ledger_analyst.ledger.models import AccountBalance, CacheEntry
from ledger_analyst.ledger.reader import LedgerReader, LedgerTotals
from ledger_analyst.ledger.store import SnapshotStore, StoredSnapshot

logger = structlog.get_logger(__name__)


class BalanceCache:
    """Memoizes the full per-account balance map across three tiers.

    Tier 1 is this object's memory, Tier 2 is an optional SnapshotStore and
    Tier 3 is a full ledger scan. Concurrent misses wait on one lock so only a
    single scan runs at a time; waiters re-check Tier 1 once they get the lock.
    """

    def __init__(
        self,
        directory: AccountDirectory,
        reader: LedgerReader,
        store: SnapshotStore | None = None,
        memory_ttl_seconds: float | None = None,
        store_max_age_hours: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        settings = get_settings()
        self._directory = directory
        self._reader = reader
        self._store = store
        self._memory_ttl = timedelta(
            seconds=memory_ttl_seconds
            if memory_ttl_seconds is not None
            else settings.balance_memory_ttl_seconds
        )
        self._store_max_age = timedelta(
            hours=store_max_age_hours
            if store_max_age_hours is not None
            else settings.balance_store_max_age_hours
        )
        self._clock = clock
        self._memory: CacheEntry | None = None
        self._lock = asyncio.Lock()

    @property
    def has_store(self) -> bool:
        return self._store is not None

    def _memory_fresh(self, now: datetime) -> bool:
        return self._memory is not None and now - self._memory.computed_at < self._memory_ttl

    async def get_entry(self, force_refresh: bool = False) -> CacheEntry:
        """Return the current cache entry, computing it if every tier misses."""
        if not force_refresh and self._memory_fresh(self._clock()):
            assert self._memory is not None
            logger.debug("balance_cache_memory_hit", accounts=len(self._memory.balances))
            return self._memory

        async with self._lock:
            now = self._clock()
            if not force_refresh and self._memory_fresh(now):
                assert self._memory is not None
                return self._memory

            if not force_refresh:
                stored = await self._load_from_store(now)
                if stored is not None:
                    self._memory = CacheEntry(
                        balances=stored.balances,
                        computed_at=now,
                        truncated=stored.truncated,
                        source="store",
                    )
                    logger.info("balance_cache_store_hit", accounts=len(stored.balances))
                    return self._memory

            entry = await self._compute()
            self._memory = entry
            await self._save_to_store(entry)
            return entry

    async def get_all_balances(self, force_refresh: bool = False) -> dict[str, AccountBalance]:
        entry = await self.get_entry(force_refresh=force_refresh)
        return entry.balances

    async def calculate_balances(self, codes: list[str]) -> dict[str, AccountBalance]:
        """Project the requested codes out of the full balance map."""
        if not codes:
            return {}
        entry = await self.get_entry()
        return entry.select(codes)

    async def refresh(self) -> CacheEntry:
        logger.info("balance_cache_force_refresh")
        return await self.get_entry(force_refresh=True)

    def sweep(self) -> bool:
        """Drop an expired memory entry. Returns True if one was removed."""
        if self._memory is not None and not self._memory_fresh(self._clock()):
            self._memory = None
            return True
        return False

    async def balances_as_of(self, as_of: date) -> CacheEntry:
        """Scan entries created up to ``as_of``, bypassing every tier.

        Snapshots always cover the full ledger, so a dated result is neither
        served from nor written to the cache.
        """
        logger.info("balance_dated_compute", as_of=as_of.isoformat())
        return await self._compute(as_of=as_of)

    async def _compute(self, as_of: date | None = None) -> CacheEntry:
        if as_of is None:
            logger.info("balance_cache_cold_compute")
        accounts = await self._directory.get_accounts()
        scan = await self._reader.scan(as_of=as_of)

        balances: dict[str, AccountBalance] = {}
        for account in accounts:
            totals = scan.totals.get(account.code, LedgerTotals())
            balances[account.code] = AccountBalance(
                code=account.code,
                name=account.name,
                type=account.type,
                subtype=account.subtype,
                total_debits=totals.debits,
                total_credits=totals.credits,
                transaction_count=totals.transactions,
            )

        unknown_codes = set(scan.totals) - set(balances)
        if unknown_codes:
            logger.warning("ledger_lines_for_unknown_accounts", count=len(unknown_codes))

        # Age counts from the end of the scan
        return CacheEntry(balances=balances, computed_at=self._clock(), truncated=scan.truncated)

    async def _load_from_store(self, now: datetime) -> StoredSnapshot | None:
        if self._store is None:
            return None
        try:
            stored = await asyncio.to_thread(self._store.latest)
        except SQLAlchemyError as e:
            logger.error("balance_store_read_failed", error=str(e))
            return None
        if stored is None:
            return None
        if now - stored.created_at > self._store_max_age:
            logger.info(
                "balance_store_stale",
                age_hours=round(stored.age_seconds(now) / 3600, 1),
                max_age_hours=self._store_max_age.total_seconds() / 3600,
            )
            return None
        return stored

    async def _save_to_store(self, entry: CacheEntry) -> None:
        if self._store is None:
            return
        try:
            await asyncio.to_thread(
                self._store.save, entry.balances, entry.computed_at, entry.truncated
            )
        except SQLAlchemyError as e:
            logger.error("balance_store_write_failed", error=str(e))

    async def status(self) -> dict[str, Any]:
        """Describe both cache tiers."""
        now = self._clock()
        memory: dict[str, Any] | None = None
        if self._memory_fresh(now):
            assert self._memory is not None
            memory = {
                "accounts": len(self._memory.balances),
                "age_seconds": round((now - self._memory.computed_at).total_seconds()),
                "truncated": self._memory.truncated,
            }

        persistent: dict[str, Any] | None = None
        if self._store is not None:
            try:
                stored = await asyncio.to_thread(self._store.latest)
            except SQLAlchemyError as e:
                logger.error("balance_store_read_failed", error=str(e))
                stored = None
            if stored is not None:
                persistent = {
                    "accounts": stored.account_count,
                    "age_hours": round(stored.age_seconds(now) / 3600, 1),
                    "created_at": stored.created_at.isoformat(),
                    "truncated": stored.truncated,
                }

        if persistent is not None:
            message = (
                f"Persistent cache holds {persistent['accounts']} accounts, "
                f"{persistent['age_hours']}h old. Queries will be fast."
            )
        elif memory is not None:
            message = f"Memory cache holds {memory['accounts']} accounts."
        else:
            message = "No cache. The first balance query will scan the full ledger."

        return {"memory_cache": memory, "persistent_cache": persistent, "message": message}
