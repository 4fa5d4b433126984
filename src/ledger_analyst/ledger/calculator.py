"""Signed balance rules for debit-normal and credit-normal accounts."""

from decimal import Decimal

# Liabilities, equity and revenue carry credit balances
CREDIT_NORMAL_TYPES = frozenset({"LIABILITY", "LIABILITIES", "EQUITY", "REVENUE", "INCOME"})


def is_credit_normal(account_type: str | None) -> bool:
    return (account_type or "").upper() in CREDIT_NORMAL_TYPES


def signed_balance(account_type: str | None, debits: Decimal, credits: Decimal) -> Decimal:
    """Return the balance of an account in its normal direction.

    Credit-normal types return ``credits - debits``. Every other type,
    including unrecognized ones, returns ``debits - credits``.
    """
    if is_credit_normal(account_type):
        return credits - debits
    return debits - credits


def normal_side(account_type: str | None) -> str:
    """Return ``"credit"`` or ``"debit"`` for the account's normal balance."""
    return "credit" if is_credit_normal(account_type) else "debit"
