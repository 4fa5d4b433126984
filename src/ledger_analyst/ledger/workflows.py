"""Balance workflows exposed to the analyst's tools and the CLI."""

from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from ledger_analyst.config import ConfigurationError
from ledger_analyst.ledger.cache import BalanceCache
from ledger_analyst.ledger.calculator import normal_side
from ledger_analyst.ledger.directory import AccountDirectory
from ledger_analyst.ledger.matcher import AccountFilter, AccountMatcher
from ledger_analyst.ledger.models import AccountBalance
from ledger_analyst.tools.ledger_api import LedgerAPIError

logger = structlog.get_logger(__name__)

TRUNCATION_CAVEAT = (
    "The ledger scan stopped at its page limit before reaching the last page, "
    "so these totals may be incomplete."
)
CATEGORY_EXAMPLES = 5


def format_currency(amount: Decimal) -> str:
    """Format as US dollars, e.g. ``-$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _error(message: str, **extra: Any) -> dict[str, Any]:
    return {"error": message, "is_error": True, **extra}


class BalanceWorkflows:
    """High-level balance queries combining the matcher and the cache."""

    def __init__(
        self,
        directory: AccountDirectory,
        cache: BalanceCache,
        matcher: AccountMatcher | None = None,
    ):
        self._directory = directory
        self._cache = cache
        self._matcher = matcher or AccountMatcher()

    async def account_balance(
        self,
        search: str | None = None,
        type: str | None = None,
        subtype: str | None = None,
        codes: list[str] | None = None,
    ) -> dict[str, Any]:
        """Find accounts matching the filter and report their balances."""
        criteria = AccountFilter(search=search, type=type, subtype=subtype, codes=list(codes or []))
        if criteria.is_empty:
            return _error(
                "Please provide at least one filter: search, type, subtype, or codes",
                hint='Examples: {"search": "cash"}, {"type": "LIABILITY"}, {"subtype": "Bank"}',
            )

        log = logger.bind(criteria=criteria.to_dict())
        try:
            accounts = await self._directory.get_accounts()
            matched = self._matcher.find(accounts, criteria)
            if not matched:
                log.info("no_accounts_matched")
                return {
                    "workflow": "account_balance",
                    "criteria": criteria.to_dict(),
                    "accounts_found": 0,
                    "accounts": [],
                    "message": "No accounts found matching your criteria",
                    "hint": "Try a broader search, or call list_account_categories to see what exists",
                }

            log.info("accounts_matched", count=len(matched), codes=[a.code for a in matched])
            entry = await self._cache.get_entry()
            balances = entry.select([a.code for a in matched])
        except (LedgerAPIError, ConfigurationError) as e:
            log.warning("account_balance_failed", error=str(e))
            return _error(f"Workflow failed: {e}", criteria=criteria.to_dict())

        rows = sorted(balances.values(), key=lambda b: abs(b.balance), reverse=True)
        total = sum((b.balance for b in rows), Decimal("0"))

        result: dict[str, Any] = {
            "workflow": "account_balance",
            "criteria": criteria.to_dict(),
            "accounts_found": len(rows),
            "accounts": [self._balance_row(b) for b in rows],
            "total_balance": str(total),
            "formatted_total": format_currency(total),
            "truncated": entry.truncated,
            "summary": (
                f'Found {len(rows)} accounts matching "{criteria.describe()}". '
                f"Total balance: {format_currency(total)}"
            ),
        }
        if entry.truncated:
            result["caveat"] = TRUNCATION_CAVEAT
        return result

    @staticmethod
    def _balance_row(balance: AccountBalance) -> dict[str, Any]:
        row = balance.to_dict()
        row["balance_type"] = normal_side(balance.type)
        row["formatted_balance"] = format_currency(balance.balance)
        return row

    async def list_account_categories(self) -> dict[str, Any]:
        """Group active accounts by type and subtype with a few examples each."""
        try:
            accounts = await self._directory.get_accounts()
        except (LedgerAPIError, ConfigurationError) as e:
            return _error(f"Workflow failed: {e}")

        grouped: dict[str, dict[str, list[dict[str, str]]]] = {}
        active = [a for a in accounts if a.is_active]
        for account in active:
            subtypes = grouped.setdefault(account.type, {})
            subtypes.setdefault(account.subtype, []).append(
                {"code": account.code, "name": account.name}
            )

        categories = {
            account_type: {
                subtype: {
                    "count": len(items),
                    "accounts": items[:CATEGORY_EXAMPLES],
                    "more": max(len(items) - CATEGORY_EXAMPLES, 0),
                }
                for subtype, items in subtypes.items()
            }
            for account_type, subtypes in grouped.items()
        }
        return {
            "workflow": "list_account_categories",
            "total_accounts": len(active),
            "categories": categories,
            "hint": 'Use these with account_balance, e.g. {"subtype": "Cash"} or {"type": "LIABILITY"}',
        }

    async def trial_balance(
        self,
        account_type: str | None = None,
        as_of_date: str | None = None,
    ) -> dict[str, Any]:
        """Trial balance over every account with activity, optionally for one type.

        With ``as_of_date`` (YYYY-MM-DD) only entries created up to that date
        count, which takes a fresh ledger scan.
        """
        as_of: date | None = None
        if as_of_date:
            try:
                as_of = date.fromisoformat(as_of_date.strip())
            except ValueError:
                return _error(f"Invalid as_of_date: {as_of_date!r}. Use YYYY-MM-DD")

        try:
            if as_of is not None:
                entry = await self._cache.balances_as_of(as_of)
            else:
                entry = await self._cache.get_entry()
        except (LedgerAPIError, ConfigurationError) as e:
            return _error(f"Workflow failed: {e}")

        type_filter = account_type.strip().upper() if account_type else None
        rows = [
            b
            for b in entry.balances.values()
            if (b.total_debits or b.total_credits)
            and (type_filter is None or type_filter in b.type.upper())
        ]
        rows.sort(key=lambda b: b.code)

        total_debits = sum((b.total_debits for b in rows), Decimal("0"))
        total_credits = sum((b.total_credits for b in rows), Decimal("0"))
        difference = total_debits - total_credits

        result: dict[str, Any] = {
            "workflow": "trial_balance",
            "account_type_filter": type_filter or "all",
            "as_of_date": as_of.isoformat() if as_of else "all time",
            "accounts_with_activity": len(rows),
            "trial_balance": [self._balance_row(b) for b in rows],
            "totals": {
                "total_debits": str(total_debits),
                "total_credits": str(total_credits),
                "difference": str(difference),
                "is_balanced": abs(difference) < Decimal("0.01"),
            },
            "truncated": entry.truncated,
        }
        if entry.truncated:
            result["caveat"] = TRUNCATION_CAVEAT
        return result

    async def refresh_balance_cache(self, force: bool = True) -> dict[str, AccountBalance]:
        """Recompute (or, without ``force``, fetch) the full balance map."""
        if force:
            self._directory.invalidate()
            entry = await self._cache.refresh()
        else:
            entry = await self._cache.get_entry()
        return entry.balances

    async def get_cache_status(self) -> dict[str, Any]:
        return await self._cache.status()
