"""
Ledger Totals

Totals are always recomputed from the full record set. No running
deltas are kept, so a missed or repeated notification can never make
the totals drift from the records.
"""

from decimal import Decimal
from typing import Callable, Iterable

from gastocerto.models.transaction import (
    LedgerTotals,
    TransactionKind,
    TransactionRecord,
)


def aggregate(records: Iterable[TransactionRecord]) -> LedgerTotals:
    """Income, expense and balance totals of a record set."""
    income = Decimal("0")
    expenses = Decimal("0")
    for record in records:
        if record.kind == TransactionKind.INCOME:
            income += record.amount
        elif record.kind == TransactionKind.EXPENSE:
            expenses += record.amount
    return LedgerTotals(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
    )


SnapshotListener = Callable[["LedgerView"], None]


class LedgerView:
    """
    Live view of a household's records.

    Feed it every snapshot the store pushes (on_change); it keeps the
    records newest-first and the totals recomputed from scratch.
    """

    def __init__(self, records: Iterable[TransactionRecord] = ()):
        self._records: tuple[TransactionRecord, ...] = ()
        self._totals = LedgerTotals()
        self._listeners: list[SnapshotListener] = []
        self.on_change(records)

    @property
    def records(self) -> tuple[TransactionRecord, ...]:
        return self._records

    @property
    def totals(self) -> LedgerTotals:
        return self._totals

    def __len__(self) -> int:
        return len(self._records)

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def on_change(self, snapshot: Iterable[TransactionRecord]) -> None:
        records = sorted(snapshot, key=lambda r: r.date, reverse=True)
        self._records = tuple(records)
        self._totals = aggregate(self._records)
        for listener in list(self._listeners):
            listener(self)
