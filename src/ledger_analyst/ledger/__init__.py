"""Ledger balance computation: reading, matching, caching.

Only the leaf modules are re-exported here; the reader, directory, cache and
workflows depend on the API client and are imported from their modules.
"""

from ledger_analyst.ledger.calculator import normal_side, signed_balance
from ledger_analyst.ledger.matcher import (
    AccountFilter,
    AccountMatcher,
    SearchTerm,
    build_search_terms,
)
from ledger_analyst.ledger.models import (
    Account,
    AccountBalance,
    CacheEntry,
    JournalEntryLine,
    JournalEntryPage,
)
from ledger_analyst.ledger.store import SnapshotStore

__all__ = [
    "Account",
    "AccountBalance",
    "AccountFilter",
    "AccountMatcher",
    "CacheEntry",
    "JournalEntryLine",
    "JournalEntryPage",
    "SearchTerm",
    "SnapshotStore",
    "build_search_terms",
    "normal_side",
    "signed_balance",
]
