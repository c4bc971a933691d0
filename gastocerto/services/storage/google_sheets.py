"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the shared backend because:
1. Every household member can open the data directly in Sheets
2. No database setup required
3. Easy to export/migrate later

All households share one spreadsheet; each row carries its household id.

TRADEOFFS:
- No push notifications: subscribers are notified after this process's
  own writes, and on refresh() for changes made elsewhere
- Batch atomicity relies on a batch being a single append_rows call
- Limited query capabilities (we filter in Python)
"""

import json
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from gastocerto.config import get_settings
from gastocerto.models.audit import AuditEvent, AuditEventType, AuditSeverity
from gastocerto.models.transaction import (
    DescriptionTag,
    InstallmentInfo,
    TransactionKind,
    TransactionRecord,
)
from gastocerto.services.storage.interface import (
    AuditStorageInterface,
    DescriptionListener,
    DescriptionTagStoreInterface,
    LedgerStoreInterface,
    PersistenceFailure,
    StorageConnectionError,
    StorageError,
    TransactionListener,
    Unsubscribe,
)


logger = structlog.get_logger(__name__)


TRANSACTION_COLUMNS = [
    "household_id",
    "id",
    "description",
    "amount",
    "date",
    "kind",
    "is_recurring",
    "installment_index",
    "installment_total",
    "installment_group_id",
    "created_at",
    "owner_ref",
]

DESCRIPTION_COLUMNS = [
    "household_id",
    "id",
    "name",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "household_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def get_descriptions_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.descriptions_sheet_name, DESCRIPTION_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


def record_to_row(household_id: str, record: TransactionRecord) -> list:
    """Convert a TransactionRecord to a spreadsheet row."""
    info = record.installment_info
    return [
        household_id,
        record.id or "",
        record.description,
        str(record.amount),
        record.date.isoformat(),
        record.kind.value,
        str(record.is_recurring),
        str(info.sequence_index) if info else "",
        str(info.sequence_total) if info else "",
        info.group_id if info else "",
        record.created_at.isoformat() if record.created_at else "",
        record.owner_ref or "",
    ]


def row_to_record(row: list) -> TransactionRecord:
    """Convert a spreadsheet row back to a TransactionRecord."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    installment_info = None
    if safe_get(9):
        installment_info = InstallmentInfo(
            sequence_index=int(safe_get(7)),
            sequence_total=int(safe_get(8)),
            group_id=safe_get(9),
        )

    return TransactionRecord(
        id=safe_get(1),
        description=safe_get(2),
        amount=Decimal(safe_get(3)),
        date=safe_get(4),
        kind=TransactionKind(safe_get(5)),
        is_recurring=safe_get(6) == "True",
        installment_info=installment_info,
        created_at=datetime.fromisoformat(safe_get(10)) if safe_get(10) else None,
        owner_ref=safe_get(11) or None,
    )


class _SnapshotPushes:
    """Local subscriber registry; Sheets has no change feed."""

    def __init__(self):
        self._callbacks: dict[str, list[Callable]] = defaultdict(list)

    def add(self, household_id: str, callback: Callable) -> Unsubscribe:
        self._callbacks[household_id].append(callback)

        def unsubscribe() -> None:
            callbacks = self._callbacks.get(household_id, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def has_subscribers(self, household_id: str) -> bool:
        return bool(self._callbacks.get(household_id))

    def notify(self, household_id: str, snapshot: list) -> None:
        for callback in list(self._callbacks.get(household_id, [])):
            callback(list(snapshot))


async def _refresh_after_write(store, household_id: str) -> None:
    """Push a fresh snapshot once a write has landed. A failed read does not undo the write."""
    try:
        await store.refresh(household_id)
    except StorageError as e:
        logger.warning("snapshot_refresh_failed", household_id=household_id, error=str(e))


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger store.

    Records are rows in one worksheet, one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._pushes = _SnapshotPushes()

    def _household_rows(self, household_id: str) -> list[tuple[int, list]]:
        """(sheet row number, row) pairs for one household."""
        sheet = self._client.get_transactions_sheet()
        all_rows = sheet.get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is the header
            if row and row[0] == household_id and len(row) > 1 and row[1]
        ]

    async def list_transactions(self, household_id: str) -> list[TransactionRecord]:
        try:
            rows = self._household_rows(household_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        records = []
        for _, row in rows:
            try:
                records.append(row_to_record(row))
            except Exception as e:
                logger.warning("skipping_malformed_row", household_id=household_id, error=str(e))
        return records

    async def refresh(self, household_id: str) -> None:
        """Re-read the sheet and push the snapshot to subscribers."""
        if self._pushes.has_subscribers(household_id):
            self._pushes.notify(household_id, await self.list_transactions(household_id))

    def subscribe(
        self,
        household_id: str,
        callback: TransactionListener,
    ) -> Unsubscribe:
        return self._pushes.add(household_id, callback)

    async def insert_one(
        self,
        household_id: str,
        record: TransactionRecord,
    ) -> TransactionRecord:
        stored = (await self.insert_batch(household_id, [record]))[0]
        return stored

    async def insert_batch(
        self,
        household_id: str,
        records: Sequence[TransactionRecord],
    ) -> list[TransactionRecord]:
        if not records:
            return []

        stored = [record.model_copy(update={"id": uuid4().hex}) for record in records]
        rows = [record_to_row(household_id, record) for record in stored]

        try:
            sheet = self._client.get_transactions_sheet()
            # One API call, so the sheet gets every row or none of them.
            sheet.append_rows(rows, value_input_option="RAW")
        except Exception as e:
            raise PersistenceFailure(f"Failed to save {len(rows)} transaction(s): {e}")

        await _refresh_after_write(self, household_id)
        return stored

    async def delete_one(self, household_id: str, record_id: str) -> bool:
        try:
            for idx, row in self._household_rows(household_id):
                if row[1] == record_id:
                    self._client.get_transactions_sheet().delete_rows(idx)
                    break
            else:
                return False
        except Exception as e:
            raise PersistenceFailure(f"Failed to delete transaction: {e}")

        await _refresh_after_write(self, household_id)
        return True


class GoogleSheetsDescriptionTagStore(DescriptionTagStoreInterface):
    """Custom description tags, one row per tag."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._pushes = _SnapshotPushes()

    async def list_descriptions(self, household_id: str) -> list[DescriptionTag]:
        try:
            sheet = self._client.get_descriptions_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list descriptions: {e}")
        return [
            DescriptionTag(id=row[1], name=row[2])
            for row in all_rows
            if len(row) >= 3 and row[0] == household_id and row[2].strip()
        ]

    async def refresh(self, household_id: str) -> None:
        if self._pushes.has_subscribers(household_id):
            self._pushes.notify(household_id, await self.list_descriptions(household_id))

    def subscribe(
        self,
        household_id: str,
        callback: DescriptionListener,
    ) -> Unsubscribe:
        return self._pushes.add(household_id, callback)

    async def insert_one(self, household_id: str, name: str) -> DescriptionTag:
        tag = DescriptionTag(id=uuid4().hex, name=name)
        try:
            sheet = self._client.get_descriptions_sheet()
            sheet.append_row([household_id, tag.id, tag.name], value_input_option="RAW")
        except Exception as e:
            raise PersistenceFailure(f"Failed to save description: {e}")
        await _refresh_after_write(self, household_id)
        return tag


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit storage.

    Audit events are appended as rows. Never deleted or modified.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(row[0]),
            timestamp=datetime.fromisoformat(row[1]),
            event_type=AuditEventType(row[2]),
            severity=AuditSeverity(row[3]),
            household_id=row[4] or None,
            entity_type=row[5] or None,
            entity_id=row[6] or None,
            correlation_id=UUID(row[7]) if row[7] else None,
            description=row[8],
            details=json.loads(row[9]) if row[9] else {},
            error_message=row[10] or None,
            is_user_action=row[11] == "True",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if len(row) < len(AUDIT_COLUMNS) or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                logger.warning("skipping_malformed_audit_row", error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to log audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
