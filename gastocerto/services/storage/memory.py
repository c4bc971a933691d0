"""
In-Memory Storage Implementation

Keeps everything in process memory. Used for tests, local runs and as
the reference behavior for the other backends:
- ids are assigned on insert
- every change pushes the full snapshot to the household's subscribers
- a batch is checked completely before any record is applied

Setting `reject_writes` makes every write raise PersistenceFailure,
which lets callers exercise their failure paths.
"""

from collections import defaultdict
from typing import Callable, Optional, Sequence
from uuid import UUID, uuid4

from gastocerto.models.audit import AuditEvent
from gastocerto.models.household import HouseholdSession
from gastocerto.models.transaction import DescriptionTag, TransactionRecord
from gastocerto.services.storage.interface import (
    AuditStorageInterface,
    DescriptionListener,
    DescriptionTagStoreInterface,
    LedgerStoreInterface,
    PersistenceFailure,
    SessionStoreInterface,
    TransactionListener,
    Unsubscribe,
)


def _new_id() -> str:
    return uuid4().hex


class _Subscribers:
    """Per-household callback registry."""

    def __init__(self):
        self._callbacks: dict[str, list[Callable]] = defaultdict(list)

    def add(self, household_id: str, callback: Callable) -> Unsubscribe:
        self._callbacks[household_id].append(callback)

        def unsubscribe() -> None:
            callbacks = self._callbacks.get(household_id, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def notify(self, household_id: str, snapshot: list) -> None:
        for callback in list(self._callbacks.get(household_id, [])):
            callback(list(snapshot))


class InMemoryLedgerStore(LedgerStoreInterface):
    """In-memory transaction store, push-updated and batch-atomic."""

    def __init__(self, reject_writes: bool = False):
        self._records: dict[str, list[TransactionRecord]] = defaultdict(list)
        self._subscribers = _Subscribers()
        self.reject_writes = reject_writes

    def _check_writable(self, operation: str) -> None:
        if self.reject_writes:
            raise PersistenceFailure(f"Write rejected: {operation}")

    def _prepare(self, record: TransactionRecord) -> TransactionRecord:
        if not record.description.strip():
            raise PersistenceFailure("Record description is empty")
        if record.amount < 0:
            raise PersistenceFailure("Record amount is negative")
        return record.model_copy(update={"id": _new_id()})

    async def list_transactions(self, household_id: str) -> list[TransactionRecord]:
        return list(self._records[household_id])

    def subscribe(
        self,
        household_id: str,
        callback: TransactionListener,
    ) -> Unsubscribe:
        return self._subscribers.add(household_id, callback)

    async def insert_one(
        self,
        household_id: str,
        record: TransactionRecord,
    ) -> TransactionRecord:
        self._check_writable("insert_one")
        stored = self._prepare(record)
        self._records[household_id].append(stored)
        self._subscribers.notify(household_id, self._records[household_id])
        return stored

    async def insert_batch(
        self,
        household_id: str,
        records: Sequence[TransactionRecord],
    ) -> list[TransactionRecord]:
        if not records:
            return []
        self._check_writable("insert_batch")
        # Prepare all first; a bad record aborts the batch before anything lands.
        stored = [self._prepare(record) for record in records]
        self._records[household_id].extend(stored)
        self._subscribers.notify(household_id, self._records[household_id])
        return stored

    async def delete_one(self, household_id: str, record_id: str) -> bool:
        self._check_writable("delete_one")
        records = self._records[household_id]
        for position, record in enumerate(records):
            if record.id == record_id:
                del records[position]
                self._subscribers.notify(household_id, records)
                return True
        return False


class InMemoryDescriptionTagStore(DescriptionTagStoreInterface):
    """In-memory custom description tags."""

    def __init__(self, reject_writes: bool = False):
        self._tags: dict[str, list[DescriptionTag]] = defaultdict(list)
        self._subscribers = _Subscribers()
        self.reject_writes = reject_writes

    async def list_descriptions(self, household_id: str) -> list[DescriptionTag]:
        return list(self._tags[household_id])

    def subscribe(
        self,
        household_id: str,
        callback: DescriptionListener,
    ) -> Unsubscribe:
        return self._subscribers.add(household_id, callback)

    async def insert_one(self, household_id: str, name: str) -> DescriptionTag:
        if self.reject_writes:
            raise PersistenceFailure("Write rejected: insert description")
        tag = DescriptionTag(id=_new_id(), name=name)
        self._tags[household_id].append(tag)
        self._subscribers.notify(household_id, self._tags[household_id])
        return tag


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


class InMemorySessionStore(SessionStoreInterface):
    """Session kept for the lifetime of the process only."""

    def __init__(self, session: Optional[HouseholdSession] = None):
        self._session = session

    def load(self) -> Optional[HouseholdSession]:
        return self._session

    def save(self, session: HouseholdSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None
