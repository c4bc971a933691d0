"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for tests and local runs
3. Keep the engine decoupled from storage implementation

Stores push the FULL current snapshot to subscribers after every change.
Subscribers recompute from the snapshot; they never apply deltas.

Batch writes are all-or-nothing: either every record is stored or none is.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence
from uuid import UUID

from gastocerto.models.audit import AuditEvent
from gastocerto.models.household import HouseholdSession
from gastocerto.models.transaction import DescriptionTag, TransactionRecord


TransactionListener = Callable[[list[TransactionRecord]], None]
DescriptionListener = Callable[[list[DescriptionTag]], None]
Unsubscribe = Callable[[], None]


class LedgerStoreInterface(ABC):
    """
    Abstract interface for a household's transaction records.
    """

    @abstractmethod
    async def list_transactions(self, household_id: str) -> list[TransactionRecord]:
        """Current records of a household (any order)."""
        pass

    @abstractmethod
    def subscribe(
        self,
        household_id: str,
        callback: TransactionListener,
    ) -> Unsubscribe:
        """
        Register for snapshot pushes.

        The callback receives the full record list after every change.
        Nothing is pushed on subscription; read the starting snapshot
        with list_transactions().

        Returns:
            A function that cancels the subscription
        """
        pass

    @abstractmethod
    async def insert_one(
        self,
        household_id: str,
        record: TransactionRecord,
    ) -> TransactionRecord:
        """
        Store one record.

        Returns:
            The stored record, carrying its new id

        Raises:
            PersistenceFailure: If the write is rejected
        """
        pass

    @abstractmethod
    async def insert_batch(
        self,
        household_id: str,
        records: Sequence[TransactionRecord],
    ) -> list[TransactionRecord]:
        """
        Store several records atomically.

        An empty batch is a no-op and returns an empty list.

        Raises:
            PersistenceFailure: If the write is rejected (nothing stored)
        """
        pass

    @abstractmethod
    async def delete_one(self, household_id: str, record_id: str) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a record was deleted, False if none had that id
        """
        pass


class DescriptionTagStoreInterface(ABC):
    """
    Abstract interface for a household's custom description tags.

    Merging with the defaults happens in the engine, not here.
    """

    @abstractmethod
    async def list_descriptions(self, household_id: str) -> list[DescriptionTag]:
        pass

    @abstractmethod
    def subscribe(
        self,
        household_id: str,
        callback: DescriptionListener,
    ) -> Unsubscribe:
        pass

    @abstractmethod
    async def insert_one(self, household_id: str, name: str) -> DescriptionTag:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one statement import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class SessionStoreInterface(ABC):
    """
    Where the current household is remembered between runs.
    """

    @abstractmethod
    def load(self) -> Optional[HouseholdSession]:
        pass

    @abstractmethod
    def save(self, session: HouseholdSession) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceFailure(StorageError):
    """The store rejected a write. Nothing from that write was stored."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
