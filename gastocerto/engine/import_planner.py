"""
Statement Import Planning

A recognized bank statement becomes a review set: every candidate is
classified as duplicate or unique against the current ledger, unique
candidates start selected, duplicates start unselected. The user
toggles membership and commits the selected subset as one batch.

Planning never touches the existing ledger. It only reads it.
"""

from typing import Iterable

from pydantic import BaseModel, ConfigDict

from gastocerto.engine.duplicates import is_duplicate
from gastocerto.models.transaction import TransactionRecord


class PlannedCandidate(BaseModel):
    """A statement candidate with its duplicate classification."""
    model_config = ConfigDict(frozen=True)

    index: int
    candidate: TransactionRecord
    is_duplicate: bool


def plan_import(
    candidates: Iterable[TransactionRecord],
    existing: Iterable[TransactionRecord],
) -> list[PlannedCandidate]:
    """Classify each candidate against the existing records."""
    existing = list(existing)
    return [
        PlannedCandidate(
            index=index,
            candidate=candidate,
            is_duplicate=is_duplicate(candidate, existing),
        )
        for index, candidate in enumerate(candidates)
    ]


class StatementImportPlan:
    """
    Review state for one recognized statement.

    The selection set is owned here; toggle() and commit() are the
    operations the review screen uses (select_all()/clear_selection()
    are bulk toggles).
    """

    def __init__(
        self,
        candidates: Iterable[TransactionRecord],
        existing: Iterable[TransactionRecord],
    ):
        self._items = tuple(plan_import(candidates, existing))
        self._selected = {
            item.index for item in self._items if not item.is_duplicate
        }

    @property
    def items(self) -> tuple[PlannedCandidate, ...]:
        return self._items

    @property
    def selected(self) -> frozenset[int]:
        return frozenset(self._selected)

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    @property
    def candidate_count(self) -> int:
        return len(self._items)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for item in self._items if item.is_duplicate)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def is_selected(self, index: int) -> bool:
        return index in self._selected

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"Candidate index must be an int, got {index!r}")
        if not 0 <= index < len(self._items):
            raise IndexError(
                f"Candidate index {index} out of range (0..{len(self._items) - 1})"
            )

    def toggle(self, index: int) -> bool:
        """
        Flip the selection of one candidate.

        Returns:
            Whether the candidate is selected after the toggle

        Raises:
            IndexError: If index is not a candidate position
        """
        self._check_index(index)
        if index in self._selected:
            self._selected.discard(index)
            return False
        self._selected.add(index)
        return True

    def select_all(self) -> None:
        self._selected = {item.index for item in self._items}

    def clear_selection(self) -> None:
        self._selected = set()

    def refresh(self, existing: Iterable[TransactionRecord]) -> None:
        """
        Re-classify against a newer ledger snapshot.

        Duplicate markers follow the snapshot; the user's selection is
        left as it is.
        """
        self._items = tuple(
            plan_import((item.candidate for item in self._items), existing)
        )

    def commit(self) -> list[TransactionRecord]:
        """
        The selected candidates, in original statement order.

        The duplicate marker is not carried over; what comes back are
        plain records ready for a single batch write. An empty
        selection yields an empty list.
        """
        return [
            item.candidate
            for item in self._items
            if item.index in self._selected
        ]

    def selected_duplicate_count(self) -> int:
        return sum(
            1 for item in self._items
            if item.is_duplicate and item.index in self._selected
        )
