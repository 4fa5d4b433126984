"""Resolve free-text account filters into concrete ledger accounts.

Users ask about "cash" or "AP" rather than account codes. A search term is
looked up in a table of canonical terms, each of which can stand for a set of
subtypes (with name patterns to exclude) or a fixed list of account codes.
Anything not in the table is matched literally against names and codes.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog

from ledger_analyst.ledger.models import Account

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SearchTerm:
    """What a canonical search term expands to."""

    subtypes: tuple[str, ...] = ()
    exclusions: tuple[str, ...] = ()
    codes: tuple[str, ...] = ()


@dataclass
class AccountFilter:
    """User-supplied account criteria. All given fields are ANDed."""

    search: str | None = None
    type: str | None = None
    subtype: str | None = None
    codes: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        # A blank field is no criterion at all
        for name in ("search", "type", "subtype"):
            value = getattr(self, name)
            if value is not None and not value.strip():
                setattr(self, name, None)

    @property
    def is_empty(self) -> bool:
        return not (self.search or self.type or self.subtype or self.codes)

    def describe(self) -> str:
        return self.search or self.type or self.subtype or "specified codes"

    def to_dict(self) -> dict[str, object]:
        return {k: v for k, v in vars(self).items() if v}


@dataclass
class ResolvedFilter:
    """An AccountFilter after synonym expansion."""

    codes: frozenset[str] | None = None
    type: str | None = None
    subtypes: frozenset[str] | None = None
    exclusions: tuple[str, ...] = ()
    search: str | None = None
    negated: tuple[str, ...] = ()


# Transit, clearing and receivable accounts distort a cash position
CASH_EXCLUSIONS = ("receivable", "receivables", "clearing", "money in transit", "in transit")

_CASH = SearchTerm(subtypes=("Cash", "Bank"), exclusions=CASH_EXCLUSIONS)
_AR = SearchTerm(subtypes=("Accounts Receivable",))
_AP = SearchTerm(subtypes=("Accounts Payable",))
_PREPAID = SearchTerm(subtypes=("Prepaid",))
_ACCRUED = SearchTerm(subtypes=("Accrued",))
_DEFERRED = SearchTerm(subtypes=("Deferred Revenue",))
_FIXED = SearchTerm(subtypes=("Fixed Assets",))

DEFAULT_SEARCH_TERMS: dict[str, SearchTerm] = {
    "cash": _CASH,
    "liquid": _CASH,
    "liquidity": _CASH,
    "bank": SearchTerm(subtypes=("Bank",), exclusions=CASH_EXCLUSIONS),
    "ar": _AR,
    "accounts receivable": _AR,
    "receivable": _AR,
    "receivables": _AR,
    "ap": _AP,
    "accounts payable": _AP,
    "payable": _AP,
    "payables": _AP,
    "prepaid": _PREPAID,
    "prepaids": _PREPAID,
    "accrued": _ACCRUED,
    "accruals": _ACCRUED,
    "revenue": SearchTerm(subtypes=("Revenue",)),
    "deferred revenue": _DEFERRED,
    "deferred": _DEFERRED,
    "fixed assets": _FIXED,
    "fa": _FIXED,
}

# Exclusions applied when a subtype is given explicitly
SUBTYPE_EXCLUSIONS: dict[str, tuple[str, ...]] = {
    "cash": CASH_EXCLUSIONS,
    "bank": CASH_EXCLUSIONS,
}


def _normalize(term: str) -> str:
    return term.strip().lower()


def build_search_terms(
    code_lists: Mapping[str, Iterable[str]] | None = None,
    base: Mapping[str, SearchTerm] = DEFAULT_SEARCH_TERMS,
) -> dict[str, SearchTerm]:
    """Merge company-specific code lists into the term table.

    A term that already expands to subtypes keeps them; subtypes take
    precedence over code lists during resolution.
    """
    terms = dict(base)
    for term, codes in (code_lists or {}).items():
        key = _normalize(term)
        existing = terms.get(key, SearchTerm())
        terms[key] = SearchTerm(
            subtypes=existing.subtypes,
            exclusions=existing.exclusions,
            codes=tuple(str(c) for c in codes),
        )
    return terms


class AccountMatcher:
    """Applies an AccountFilter to the chart of accounts."""

    def __init__(
        self,
        terms: Mapping[str, SearchTerm] | None = None,
        subtype_exclusions: Mapping[str, tuple[str, ...]] = SUBTYPE_EXCLUSIONS,
    ):
        self._terms = dict(terms) if terms is not None else dict(DEFAULT_SEARCH_TERMS)
        self._subtype_exclusions = dict(subtype_exclusions)

    def resolve(self, criteria: AccountFilter) -> ResolvedFilter:
        """Expand synonyms in the filter into subtypes, exclusions or codes."""
        resolved = ResolvedFilter(type=criteria.type, search=criteria.search)
        if criteria.search:
            resolved.negated = (_normalize(criteria.search),)
        if criteria.codes:
            resolved.codes = frozenset(str(c) for c in criteria.codes)

        if criteria.search and not criteria.subtype and not criteria.codes:
            term = self._terms.get(_normalize(criteria.search))
            if term and term.subtypes:
                resolved.subtypes = frozenset(s.lower() for s in term.subtypes)
                resolved.exclusions = term.exclusions
                resolved.negated += tuple(
                    s for s in resolved.subtypes if s not in resolved.negated
                )
                resolved.search = None
                logger.debug(
                    "search_mapped_to_subtypes",
                    search=criteria.search,
                    subtypes=list(term.subtypes),
                    exclusions=list(term.exclusions),
                )
            elif term and term.codes:
                resolved.codes = frozenset(term.codes)
                resolved.search = None
                logger.debug("search_mapped_to_codes", search=criteria.search, codes=list(term.codes))

        if criteria.subtype and resolved.subtypes is None:
            subtype_key = _normalize(criteria.subtype)
            resolved.subtypes = frozenset({subtype_key})
            resolved.exclusions = self._subtype_exclusions.get(subtype_key, ())

        return resolved

    def matches(self, account: Account, resolved: ResolvedFilter) -> bool:
        if not account.is_active:
            return False

        if resolved.codes is not None and account.code not in resolved.codes:
            return False

        if resolved.type and account.type.upper() != resolved.type.strip().upper():
            return False

        name = account.name.lower()

        if resolved.subtypes is not None and account.subtype.lower() not in resolved.subtypes:
            return False

        if any(pattern.lower() in name for pattern in resolved.exclusions):
            return False

        # "Non-Cash Reserve" is not a cash account, whatever its subtype
        if any(f"non-{term}" in name or f"non {term}" in name for term in resolved.negated):
            return False

        if resolved.search:
            needle = resolved.search.strip().lower()
            if needle not in name and resolved.search.strip() not in account.code:
                return False

        return True

    def find(self, accounts: Iterable[Account], criteria: AccountFilter) -> list[Account]:
        """Return the active accounts satisfying every given criterion."""
        resolved = self.resolve(criteria)
        return [account for account in accounts if self.matches(account, resolved)]
