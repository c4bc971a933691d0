"""
Single-Entry Confirmation

A single entry (typed in, or recognized from one document) is checked
against the ledger before it is written:

    PENDING ──no duplicate──▶ COMMITTED
       │
       └──duplicate──▶ AWAITING_CONFIRMATION ──confirm──▶ COMMITTED
                                              └─cancel──▶ DISCARDED

CRITICAL: A flagged entry is NEVER written without an explicit confirm.
On confirm, exactly the held entry is written, unmodified.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from gastocerto.engine.duplicates import is_duplicate
from gastocerto.models.transaction import TransactionEntry, TransactionRecord


class ConfirmationState(str, Enum):
    PENDING = "pending"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMMITTED = "committed"
    DISCARDED = "discarded"


TERMINAL_STATES = frozenset({ConfirmationState.COMMITTED, ConfirmationState.DISCARDED})


class InvalidTransitionError(Exception):
    """Action not allowed in the current state (None: nothing pending)."""

    def __init__(self, action: str, state: Optional[ConfirmationState]):
        self.action = action
        self.state = state
        if state is None:
            super().__init__(f"Cannot {action}: nothing is pending")
        else:
            super().__init__(f"Cannot {action} while {state.value}")


class DuplicateReview(BaseModel):
    """What the user sees before deciding on a flagged entry."""
    model_config = ConfigDict(frozen=True)

    description: str
    amount: Decimal
    date: date

    def summary(self) -> str:
        amount = f"{self.amount:.2f}".replace(".", ",")
        return (
            f"Descrição: {self.description}\n"
            f"Valor: R$ {amount}\n"
            f"Data: {self.date.strftime('%d/%m/%Y')}"
        )


InsertCallback = Callable[[TransactionEntry], Awaitable[Any]]


class SingleEntryConfirmation:
    """
    Gate for writing one entry.

    Args:
        entry: The entry to write
        insert: Coroutine function performing the write; its result is
                kept as `result` once the entry is committed
    """

    def __init__(self, entry: TransactionEntry, insert: InsertCallback):
        self._entry = entry
        self._insert = insert
        self._state = ConfirmationState.PENDING
        self.result: Any = None

    @property
    def state(self) -> ConfirmationState:
        return self._state

    @property
    def entry(self) -> TransactionEntry:
        return self._entry

    @property
    def is_awaiting_confirmation(self) -> bool:
        return self._state == ConfirmationState.AWAITING_CONFIRMATION

    @property
    def is_finished(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def review(self) -> Optional[DuplicateReview]:
        """The held entry's details, only while awaiting a decision."""
        if self._state != ConfirmationState.AWAITING_CONFIRMATION:
            return None
        return DuplicateReview(
            description=self._entry.description,
            amount=self._entry.amount,
            date=self._entry.date,
        )

    async def _write(self) -> None:
        # State only moves once the write has succeeded.
        self.result = await self._insert(self._entry)
        self._state = ConfirmationState.COMMITTED

    async def submit(
        self,
        existing: Iterable[TransactionRecord],
    ) -> ConfirmationState:
        """
        Run the duplicate check and either write or hold the entry.

        Raises:
            InvalidTransitionError: If already submitted
        """
        if self._state != ConfirmationState.PENDING:
            raise InvalidTransitionError("submit", self._state)

        if is_duplicate(self._entry, existing):
            self._state = ConfirmationState.AWAITING_CONFIRMATION
        else:
            await self._write()
        return self._state

    async def confirm(self) -> ConfirmationState:
        """Write the held entry despite the duplicate warning."""
        if self._state != ConfirmationState.AWAITING_CONFIRMATION:
            raise InvalidTransitionError("confirm", self._state)
        await self._write()
        return self._state

    def cancel(self) -> ConfirmationState:
        """Drop the held entry without writing anything."""
        if self._state != ConfirmationState.AWAITING_CONFIRMATION:
            raise InvalidTransitionError("cancel", self._state)
        self._state = ConfirmationState.DISCARDED
        return self._state
