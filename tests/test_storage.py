"""
Tests for the storage backends.

The Sheets stores run against an in-process fake worksheet; nothing
talks to Google.
"""

import asyncio
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from gastocerto.models.audit import AuditEventBuilder
from gastocerto.models.transaction import (
    InstallmentInfo,
    TransactionKind,
    TransactionRecord,
)
from gastocerto.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsDescriptionTagStore,
    GoogleSheetsLedgerStore,
    InMemoryAuditStorage,
    InMemoryDescriptionTagStore,
    InMemoryLedgerStore,
    PersistenceFailure,
)
from gastocerto.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    DESCRIPTION_COLUMNS,
    TRANSACTION_COLUMNS,
    record_to_row,
    row_to_record,
)


HOUSEHOLD = "familia-1a2b3c4d"


def record(description="Aluguel", amount="1200.00", day=5):
    return TransactionRecord(
        description=description,
        amount=Decimal(amount),
        date=date(2024, 3, day),
    )


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the stores."""

    def __init__(self, columns, fail=False):
        self.rows = [list(columns)]
        self.fail = fail
        self.fail_reads = False
        self.reads_fail_after_write = False
        self.append_calls = 0

    def get_all_values(self):
        if self.fail_reads:
            raise RuntimeError("read quota exceeded")
        return [list(row) for row in self.rows]

    def append_rows(self, rows, value_input_option=None):
        if self.fail:
            raise RuntimeError("quota exceeded")
        self.append_calls += 1
        self.rows.extend(list(row) for row in rows)
        self.fail_reads = self.reads_fail_after_write

    def append_row(self, row, value_input_option=None):
        self.append_rows([row], value_input_option)

    def delete_rows(self, index):
        del self.rows[index - 1]
        self.fail_reads = self.reads_fail_after_write


class FakeSheetsClient:
    def __init__(self, fail=False):
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS, fail)
        self.descriptions = FakeWorksheet(DESCRIPTION_COLUMNS, fail)
        self.audit = FakeWorksheet(AUDIT_COLUMNS, fail)

    def get_transactions_sheet(self):
        return self.transactions

    def get_descriptions_sheet(self):
        return self.descriptions

    def get_audit_sheet(self):
        return self.audit


class TestInMemoryLedgerStore:
    """Tests for the in-memory transaction store."""

    def test_insert_assigns_id(self):
        """Test that stored records get an id."""
        store = InMemoryLedgerStore()
        stored = asyncio.run(store.insert_one(HOUSEHOLD, record()))
        assert stored.id
        assert asyncio.run(store.list_transactions(HOUSEHOLD)) == [stored]

    def test_households_are_separate(self):
        """Test that households do not see each other's records."""
        store = InMemoryLedgerStore()
        asyncio.run(store.insert_one(HOUSEHOLD, record()))
        assert asyncio.run(store.list_transactions("familia-outra")) == []

    def test_subscribers_get_full_snapshot(self):
        """Test that each write pushes the whole record list."""
        store = InMemoryLedgerStore()
        snapshots = []
        store.subscribe(HOUSEHOLD, snapshots.append)

        asyncio.run(store.insert_one(HOUSEHOLD, record()))
        asyncio.run(store.insert_batch(HOUSEHOLD, [record("Luz"), record("Água")]))

        assert [len(s) for s in snapshots] == [1, 3]

    def test_nothing_pushed_on_subscribe(self):
        """Test that subscribing alone pushes nothing."""
        store = InMemoryLedgerStore()
        snapshots = []
        store.subscribe(HOUSEHOLD, snapshots.append)
        assert snapshots == []

    def test_unsubscribe(self):
        """Test that an unsubscribed callback is not called."""
        store = InMemoryLedgerStore()
        snapshots = []
        unsubscribe = store.subscribe(HOUSEHOLD, snapshots.append)
        unsubscribe()
        asyncio.run(store.insert_one(HOUSEHOLD, record()))
        assert snapshots == []

    def test_rejected_batch_stores_nothing(self):
        """Test that a rejected batch leaves the store unchanged."""
        store = InMemoryLedgerStore(reject_writes=True)
        with pytest.raises(PersistenceFailure):
            asyncio.run(store.insert_batch(HOUSEHOLD, [record(), record("Luz")]))
        assert asyncio.run(store.list_transactions(HOUSEHOLD)) == []

    def test_empty_batch_is_noop(self):
        """Test that an empty batch returns an empty list."""
        store = InMemoryLedgerStore(reject_writes=True)
        assert asyncio.run(store.insert_batch(HOUSEHOLD, [])) == []

    def test_delete(self):
        """Test deleting by id."""
        store = InMemoryLedgerStore()
        stored = asyncio.run(store.insert_one(HOUSEHOLD, record()))

        assert asyncio.run(store.delete_one(HOUSEHOLD, stored.id)) is True
        assert asyncio.run(store.delete_one(HOUSEHOLD, stored.id)) is False
        assert asyncio.run(store.list_transactions(HOUSEHOLD)) == []


class TestInMemoryOtherStores:
    """Tests for description and audit in-memory stores."""

    def test_description_insert_and_push(self):
        """Test description tag insertion."""
        store = InMemoryDescriptionTagStore()
        snapshots = []
        store.subscribe(HOUSEHOLD, snapshots.append)

        tag = asyncio.run(store.insert_one(HOUSEHOLD, "Farmácia"))

        assert tag.id
        assert [t.name for t in snapshots[-1]] == ["Farmácia"]

    def test_audit_queries(self):
        """Test correlation and recent-event lookups."""
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        asyncio.run(storage.append_event(AuditEventBuilder.user_confirmed(HOUSEHOLD, "Aluguel", correlation_id)))
        asyncio.run(storage.append_event(AuditEventBuilder.description_added(HOUSEHOLD, "Farmácia")))

        related = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        recent = asyncio.run(storage.get_recent_events(limit=1))

        assert len(related) == 1
        assert len(recent) == 1


class TestRowConversion:
    """Tests for Sheets row mapping."""

    def test_installment_record_round_trip(self):
        """Test that installment info and stamps survive a row."""
        original = TransactionRecord(
            id="abc",
            description="Notebook (1/3)",
            amount=Decimal("300.00"),
            date=date(2024, 2, 1),
            kind=TransactionKind.EXPENSE,
            installment_info=InstallmentInfo(sequence_index=1, sequence_total=3, group_id="g1"),
            created_at=datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc),
            owner_ref="user-1",
        )
        row = record_to_row(HOUSEHOLD, original)
        assert len(row) == len(TRANSACTION_COLUMNS)
        assert row_to_record(row) == original


class TestGoogleSheetsLedgerStore:
    """Tests for the Sheets transaction store."""

    def test_batch_is_one_append(self):
        """Test that a batch is written in a single call."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)

        stored = asyncio.run(store.insert_batch(HOUSEHOLD, [record(), record("Luz")]))

        assert client.transactions.append_calls == 1
        assert len(stored) == 2
        assert all(r.id for r in stored)

    def test_list_filters_household(self):
        """Test that only the household's rows are returned."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        asyncio.run(store.insert_one(HOUSEHOLD, record()))
        asyncio.run(store.insert_one("familia-outra", record("Luz")))

        listed = asyncio.run(store.list_transactions(HOUSEHOLD))

        assert [r.description for r in listed] == ["Aluguel"]

    def test_failed_append_raises_persistence_failure(self):
        """Test that an API error becomes PersistenceFailure."""
        store = GoogleSheetsLedgerStore(FakeSheetsClient(fail=True))
        with pytest.raises(PersistenceFailure):
            asyncio.run(store.insert_batch(HOUSEHOLD, [record()]))

    def test_write_pushes_snapshot(self):
        """Test that subscribers see the re-read sheet after a write."""
        store = GoogleSheetsLedgerStore(FakeSheetsClient())
        snapshots = []
        store.subscribe(HOUSEHOLD, snapshots.append)

        asyncio.run(store.insert_one(HOUSEHOLD, record()))

        assert len(snapshots[-1]) == 1

    def test_delete(self):
        """Test row deletion by record id."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        first, second = asyncio.run(store.insert_batch(HOUSEHOLD, [record(), record("Luz")]))

        assert asyncio.run(store.delete_one(HOUSEHOLD, first.id)) is True
        assert asyncio.run(store.delete_one(HOUSEHOLD, "missing")) is False
        assert [r.id for r in asyncio.run(store.list_transactions(HOUSEHOLD))] == [second.id]

    def test_failed_refresh_after_append_keeps_write(self):
        """Test that a read failure after a landed batch does not report the batch as failed."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        snapshots = []
        store.subscribe(HOUSEHOLD, snapshots.append)
        client.transactions.reads_fail_after_write = True

        stored = asyncio.run(store.insert_batch(HOUSEHOLD, [record(), record("Luz")]))

        assert len(stored) == 2
        assert client.transactions.append_calls == 1
        assert len(client.transactions.rows) == 3
        assert snapshots == []

    def test_failed_refresh_after_delete_keeps_delete(self):
        """Test that a read failure after a landed delete still reports success."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        first, _ = asyncio.run(store.insert_batch(HOUSEHOLD, [record(), record("Luz")]))
        store.subscribe(HOUSEHOLD, lambda snapshot: None)
        client.transactions.reads_fail_after_write = True

        assert asyncio.run(store.delete_one(HOUSEHOLD, first.id)) is True
        assert len(client.transactions.rows) == 2


class TestGoogleSheetsOtherStores:
    """Tests for Sheets description and audit storage."""

    def test_descriptions(self):
        """Test description tag insertion and listing."""
        store = GoogleSheetsDescriptionTagStore(FakeSheetsClient())
        asyncio.run(store.insert_one(HOUSEHOLD, "Farmácia"))
        tags = asyncio.run(store.list_descriptions(HOUSEHOLD))
        assert [t.name for t in tags] == ["Farmácia"]

    def test_failed_refresh_after_description_insert(self):
        """Test that a read failure after a landed tag insert returns the tag."""
        client = FakeSheetsClient()
        store = GoogleSheetsDescriptionTagStore(client)
        store.subscribe(HOUSEHOLD, lambda snapshot: None)
        client.descriptions.reads_fail_after_write = True

        tag = asyncio.run(store.insert_one(HOUSEHOLD, "Farmácia"))

        assert tag.name == "Farmácia"
        assert len(client.descriptions.rows) == 2

    def test_audit_round_trip(self):
        """Test that audit rows are read back by correlation id."""
        storage = GoogleSheetsAuditStorage(FakeSheetsClient())
        correlation_id = uuid4()
        event = AuditEventBuilder.import_cancelled(HOUSEHOLD, 4, correlation_id)

        assert asyncio.run(storage.append_event(event)) is True
        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))

        assert len(events) == 1
        assert events[0].details == {"candidate_count": 4}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
