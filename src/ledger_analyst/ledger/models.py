"""Parsed record types for the ledger API boundary.

The ERP returns loosely shaped JSON. Everything past this module works with
these records, so missing fields are coalesced here once: names, types and
subtypes default to ``"Unknown"`` and missing amounts to zero.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from ledger_analyst.ledger.calculator import signed_balance

UNKNOWN = "Unknown"


class AccountType(str, Enum):
    """Account classifications reported by the ledger."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


class AccountStatus(str, Enum):
    """Account lifecycle status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class LineSide(str, Enum):
    """Side of a journal entry line."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


def to_decimal(value: Any) -> Decimal:
    """Coerce an API amount to Decimal, treating junk and None as zero."""
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


@dataclass(frozen=True)
class Account:
    """An account from the chart of accounts."""

    code: str
    name: str = UNKNOWN
    type: str = UNKNOWN
    subtype: str = UNKNOWN
    status: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE.value

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Account":
        """Build an account from a ``GET /accounts`` item."""
        return cls(
            code=str(raw.get("code") or ""),
            name=raw.get("name") or UNKNOWN,
            type=str(raw["type"]).upper() if raw.get("type") else UNKNOWN,
            subtype=raw.get("subtype") or UNKNOWN,
            status=(raw.get("status") or "").upper(),
        )


@dataclass(frozen=True)
class JournalEntryLine:
    """A single debit or credit line of a journal entry."""

    account_code: str
    side: LineSide | None
    amount: Decimal

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "JournalEntryLine | None":
        """Build a line from a journal entry ``items[]`` element.

        Returns None for lines without an account code.
        """
        code = raw.get("account_code")
        if not code:
            return None
        amount_raw = raw.get("amount")
        amount = amount_raw.get("amount") if isinstance(amount_raw, dict) else amount_raw
        side_raw = str(raw.get("side") or "").upper()
        side = LineSide(side_raw) if side_raw in LineSide.__members__ else None
        return cls(account_code=str(code), side=side, amount=to_decimal(amount))


@dataclass
class JournalEntryPage:
    """One page of ``GET /journal-entries``."""

    lines: list[JournalEntryLine]
    entry_count: int
    next_cursor: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "JournalEntryPage":
        entries = raw.get("journal_entries") or []
        lines: list[JournalEntryLine] = []
        for entry in entries:
            for item in entry.get("items") or []:
                line = JournalEntryLine.from_api(item)
                if line is not None:
                    lines.append(line)
        pagination = raw.get("pagination") or {}
        return cls(
            lines=lines,
            entry_count=len(entries),
            next_cursor=pagination.get("next_cursor") or None,
        )


@dataclass(frozen=True)
class AccountBalance:
    """Aggregated debit/credit totals for one account.

    ``balance`` is always derived from the totals and the account type.
    """

    code: str
    name: str = UNKNOWN
    type: str = UNKNOWN
    subtype: str = UNKNOWN
    total_debits: Decimal = Decimal("0")
    total_credits: Decimal = Decimal("0")
    transaction_count: int = 0

    @property
    def balance(self) -> Decimal:
        return signed_balance(self.type, self.total_debits, self.total_credits)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "type": self.type,
            "subtype": self.subtype,
            "total_debits": str(self.total_debits),
            "total_credits": str(self.total_credits),
            "balance": str(self.balance),
            "transaction_count": self.transaction_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountBalance":
        """Rebuild from ``to_dict`` output. The stored balance is ignored."""
        return cls(
            code=str(data["code"]),
            name=data.get("name") or UNKNOWN,
            type=data.get("type") or UNKNOWN,
            subtype=data.get("subtype") or UNKNOWN,
            total_debits=to_decimal(data.get("total_debits")),
            total_credits=to_decimal(data.get("total_credits")),
            transaction_count=int(data.get("transaction_count") or 0),
        )


@dataclass
class CacheEntry:
    """A full set of balances computed at one point in time."""

    balances: dict[str, AccountBalance]
    computed_at: datetime
    truncated: bool = False
    source: str = field(default="ledger", compare=False)

    def select(self, codes: list[str]) -> dict[str, AccountBalance]:
        """The balances for ``codes``, skipping codes not in the chart."""
        return {code: self.balances[code] for code in codes if code in self.balances}
