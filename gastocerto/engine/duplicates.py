"""
Duplicate Detection

Two records describe the same real-world event when their trimmed
descriptions are identical, their amounts differ by strictly less than
one cent, and they fall on the same UTC calendar day.

The check is a linear scan over the existing records. Household ledgers
are small enough that no index is kept.
"""

from decimal import Decimal
from typing import Any, Iterable, Protocol

from gastocerto.models.transaction import as_utc_date


AMOUNT_TOLERANCE = Decimal("0.01")


class LedgerItem(Protocol):
    """Anything with the fields the duplicate check compares."""
    description: str
    amount: Any
    date: Any


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def is_same_event(first: LedgerItem, second: LedgerItem) -> bool:
    """Pairwise comparison; symmetric in its arguments."""
    if first.description.strip() != second.description.strip():
        return False
    if abs(_as_decimal(first.amount) - _as_decimal(second.amount)) >= AMOUNT_TOLERANCE:
        return False
    return as_utc_date(first.date) == as_utc_date(second.date)


def find_duplicates(
    candidate: LedgerItem,
    existing: Iterable[LedgerItem],
) -> list:
    """Every existing record matching the candidate, in input order."""
    return [record for record in existing if is_same_event(candidate, record)]


def is_duplicate(candidate: LedgerItem, existing: Iterable[LedgerItem]) -> bool:
    """True if any existing record is the same event as the candidate."""
    return any(is_same_event(candidate, record) for record in existing)
