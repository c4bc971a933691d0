"""
Main Orchestrator for GastoCerto

This module ties together all the components and defines the
end-to-end flows of one household's ledger:
1. Single entry (form or recognized document → duplicate check → confirm → save)
2. Installment purchase (entry → expand → one atomic batch write)
3. Statement import (candidates → review plan → selected subset → one batch write)
4. Deletion and custom description tags

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing flagged as a duplicate is written without explicit confirmation
- Group and batch writes are all-or-nothing
- Every step is audited

Totals and the record list are never updated by hand here: they follow
the snapshots the store pushes after each write.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog

from gastocerto.audit import AuditLogger, create_correlation_id
from gastocerto.config import get_settings, validate_all_settings
from gastocerto.engine import (
    ConfirmationState,
    DescriptionCatalog,
    InvalidTransitionError,
    LedgerView,
    SingleEntryConfirmation,
    StatementImportPlan,
    expand_installments,
)
from gastocerto.models.household import HouseholdSession
from gastocerto.models.transaction import (
    DescriptionTag,
    LedgerTotals,
    TransactionEntry,
    TransactionRecord,
)
from gastocerto.services.recognition import (
    GeminiRecognitionService,
    RecognitionServiceInterface,
)
from gastocerto.services.storage import (
    AuditStorageInterface,
    DescriptionTagStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDescriptionTagStore,
    GoogleSheetsLedgerStore,
    InMemoryDescriptionTagStore,
    InMemoryLedgerStore,
    LedgerStoreInterface,
    NotFoundError,
    PersistenceFailure,
    SessionStoreInterface,
)
from gastocerto.session import (
    FileSessionStore,
    HouseholdSessionManager,
    NoHouseholdError,
)
from gastocerto.validation import TransactionValidator, ValidationError


logger = structlog.get_logger("gastocerto.orchestrator")


class HouseholdLedger:
    """
    One household's ledger, kept in sync with its store.

    Flow for a single entry:
    1. Validate → ValidationError before anything else happens
    2. Duplicate check against the current snapshot
    3. No duplicate → write immediately
    4. Duplicate → hold as pending_confirmation (PAUSE - require decision)
    5. confirm_pending() writes it, cancel_pending() drops it

    At most one single entry and one statement import are pending at a time.
    """

    def __init__(
        self,
        session: Optional[HouseholdSession],
        ledger_store: LedgerStoreInterface,
        description_store: DescriptionTagStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        if session is None:
            raise NoHouseholdError("A household session is required to open a ledger")

        self._session = session
        self._ledger_store = ledger_store
        self._description_store = description_store
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or TransactionValidator()

        self._view = LedgerView()
        self._catalog = DescriptionCatalog()
        self._unsubscribers = []

        self._pending_confirmation: Optional[SingleEntryConfirmation] = None
        self._pending_confirmation_id: Optional[UUID] = None
        self._pending_import: Optional[StatementImportPlan] = None
        self._pending_import_id: Optional[UUID] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Load the current snapshots and follow the stores' pushes."""
        if self._unsubscribers:
            return
        household_id = self.household_id

        self._unsubscribers.append(
            self._ledger_store.subscribe(household_id, self._on_transactions)
        )
        self._unsubscribers.append(
            self._description_store.subscribe(household_id, self._catalog.on_change)
        )

        self._on_transactions(await self._ledger_store.list_transactions(household_id))
        self._catalog.on_change(await self._description_store.list_descriptions(household_id))

        logger.info(
            "ledger_started",
            household_id=household_id,
            record_count=len(self._view),
        )

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_transactions(self, snapshot: Iterable[TransactionRecord]) -> None:
        self._view.on_change(snapshot)
        if self._pending_import is not None:
            self._pending_import.refresh(self._view.records)

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def session(self) -> HouseholdSession:
        return self._session

    @property
    def household_id(self) -> str:
        return self._session.household_id

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @property
    def view(self) -> LedgerView:
        return self._view

    @property
    def transactions(self) -> tuple[TransactionRecord, ...]:
        """Records, newest first."""
        return self._view.records

    @property
    def totals(self) -> LedgerTotals:
        return self._view.totals

    @property
    def descriptions(self) -> tuple[DescriptionTag, ...]:
        """Default and custom description tags, merged and sorted."""
        return self._catalog.tags

    @property
    def pending_confirmation(self) -> Optional[SingleEntryConfirmation]:
        return self._pending_confirmation

    @property
    def pending_import(self) -> Optional[StatementImportPlan]:
        return self._pending_import

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _write_entry(
        self,
        entry: TransactionEntry,
        correlation_id: UUID,
    ) -> list[TransactionRecord]:
        """Write one entry: an installment group as a batch, anything else alone."""
        now = datetime.now(timezone.utc)
        owner_ref = self._session.user_id

        try:
            if entry.is_installment_purchase:
                records = [
                    record.stamped(owner_ref, now)
                    for record in expand_installments(
                        entry,
                        entry.installment_count,
                        validator=self._validator,
                    )
                ]
                stored = await self._ledger_store.insert_batch(self.household_id, records)
                await self._audit_logger.log_installments_saved(
                    household_id=self.household_id,
                    group_id=records[0].installment_info.group_id,
                    description=entry.description,
                    count=len(stored),
                    correlation_id=correlation_id,
                )
            else:
                record = entry.to_record().stamped(owner_ref, now)
                stored = [await self._ledger_store.insert_one(self.household_id, record)]
                await self._audit_logger.log_transaction_saved(
                    household_id=self.household_id,
                    record=stored[0],
                    correlation_id=correlation_id,
                )
        except PersistenceFailure as e:
            await self._audit_logger.log_save_failed(
                household_id=self.household_id,
                operation="insert_entry",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        return stored

    async def submit_entry(self, **fields: Any) -> SingleEntryConfirmation:
        """
        Validate raw form fields and submit them.

        Fields: description, amount, date, kind (or type), is_recurring,
        installment_count.

        Raises:
            ValidationError: If any field is invalid (nothing is written)
        """
        correlation_id = create_correlation_id()
        try:
            entry = self._validator.validate_entry(fields)
        except ValidationError as e:
            await self._audit_logger.log_validation_failed(
                household_id=self.household_id,
                issues=e.to_dicts(),
                correlation_id=correlation_id,
            )
            raise
        return await self.submit_entry_model(entry, correlation_id=correlation_id)

    async def submit_entry_model(
        self,
        entry: TransactionEntry,
        correlation_id: Optional[UUID] = None,
    ) -> SingleEntryConfirmation:
        """
        Duplicate-check an entry and write it, or hold it for confirmation.

        Returns:
            The confirmation; COMMITTED if written, AWAITING_CONFIRMATION
            if held as pending_confirmation

        Raises:
            InvalidTransitionError: If another entry is still awaiting a decision
            ValidationError: If the installment request is invalid
            PersistenceFailure: If the store rejects the write
        """
        if self._pending_confirmation is not None:
            raise InvalidTransitionError("submit", self._pending_confirmation.state)

        correlation_id = correlation_id or create_correlation_id()

        if entry.is_installment_purchase:
            issues = self._validator.check_installments(entry.kind, entry.installment_count)
            if issues:
                error = ValidationError(issues)
                await self._audit_logger.log_validation_failed(
                    household_id=self.household_id,
                    issues=error.to_dicts(),
                    correlation_id=correlation_id,
                )
                raise error

        async def insert(held: TransactionEntry) -> list[TransactionRecord]:
            return await self._write_entry(held, correlation_id)

        confirmation = SingleEntryConfirmation(entry, insert)
        state = await confirmation.submit(self._view.records)

        if state == ConfirmationState.AWAITING_CONFIRMATION:
            self._pending_confirmation = confirmation
            self._pending_confirmation_id = correlation_id
            await self._audit_logger.log_duplicate_flagged(
                household_id=self.household_id,
                description=entry.description,
                amount=str(entry.amount),
                on_date=entry.date.isoformat(),
                correlation_id=correlation_id,
            )

        return confirmation

    def _require_pending_confirmation(self, action: str) -> SingleEntryConfirmation:
        if self._pending_confirmation is None:
            raise InvalidTransitionError(action, None)
        return self._pending_confirmation

    async def confirm_pending(self) -> list[TransactionRecord]:
        """
        Write the held entry despite the duplicate warning.

        On PersistenceFailure the entry stays pending so the user can
        retry or cancel.
        """
        confirmation = self._require_pending_confirmation("confirm")
        correlation_id = self._pending_confirmation_id

        await self._audit_logger.log_user_confirmed(
            household_id=self.household_id,
            description=confirmation.entry.description,
            correlation_id=correlation_id,
        )
        await confirmation.confirm()

        self._pending_confirmation = None
        self._pending_confirmation_id = None
        return confirmation.result

    async def cancel_pending(self) -> None:
        """Drop the held entry. Nothing is written."""
        confirmation = self._require_pending_confirmation("cancel")
        confirmation.cancel()

        await self._audit_logger.log_user_cancelled(
            household_id=self.household_id,
            description=confirmation.entry.description,
            correlation_id=self._pending_confirmation_id,
        )
        self._pending_confirmation = None
        self._pending_confirmation_id = None

    # -------------------------------------------------------------------------
    # Statement import
    # -------------------------------------------------------------------------

    def plan_statement(
        self,
        candidates: Iterable[TransactionRecord],
        correlation_id: Optional[UUID] = None,
    ) -> StatementImportPlan:
        """
        Start reviewing recognized candidates.

        Replaces any review already open. Duplicates start unselected.
        """
        plan = StatementImportPlan(candidates, self._view.records)
        self._pending_import = plan
        self._pending_import_id = correlation_id or create_correlation_id()

        logger.info(
            "statement_planned",
            household_id=self.household_id,
            candidates=plan.candidate_count,
            duplicates=plan.duplicate_count,
        )
        return plan

    def _require_pending_import(self, action: str) -> StatementImportPlan:
        if self._pending_import is None:
            raise InvalidTransitionError(action, None)
        return self._pending_import

    async def commit_import(self) -> list[TransactionRecord]:
        """
        Write the selected candidates in one atomic batch.

        An empty selection commits nothing and closes the review.
        On PersistenceFailure nothing is stored and the review stays open.
        """
        plan = self._require_pending_import("commit")
        correlation_id = self._pending_import_id

        now = datetime.now(timezone.utc)
        records = [
            record.stamped(self._session.user_id, now)
            for record in plan.commit()
        ]

        try:
            stored = await self._ledger_store.insert_batch(self.household_id, records)
        except PersistenceFailure as e:
            await self._audit_logger.log_save_failed(
                household_id=self.household_id,
                operation="import_statement",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_statement_imported(
            household_id=self.household_id,
            imported=len(stored),
            candidates=plan.candidate_count,
            duplicates_imported=plan.selected_duplicate_count(),
            correlation_id=correlation_id,
        )

        self._pending_import = None
        self._pending_import_id = None
        return stored

    async def cancel_import(self) -> None:
        """Close the review. Nothing is written."""
        plan = self._require_pending_import("cancel")

        await self._audit_logger.log_import_cancelled(
            household_id=self.household_id,
            candidate_count=plan.candidate_count,
            correlation_id=self._pending_import_id,
        )
        self._pending_import = None
        self._pending_import_id = None

    # -------------------------------------------------------------------------
    # Deletion and descriptions
    # -------------------------------------------------------------------------

    async def delete_transaction(self, record_id: str) -> None:
        """
        Delete one record.

        Installment siblings are separate records and are left alone.

        Raises:
            NotFoundError: If no record has this id
        """
        try:
            deleted = await self._ledger_store.delete_one(self.household_id, record_id)
        except PersistenceFailure as e:
            await self._audit_logger.log_save_failed(
                household_id=self.household_id,
                operation="delete_transaction",
                error_message=str(e),
            )
            raise

        if not deleted:
            raise NotFoundError(f"Transaction {record_id} not found")

        await self._audit_logger.log_transaction_deleted(self.household_id, record_id)

    async def add_description(self, name: str) -> Optional[DescriptionTag]:
        """
        Add a custom description tag.

        Returns:
            The new tag, or None if the name already exists (any case)

        Raises:
            ValidationError: If the name is blank
        """
        name = self._validator.validate_description_name(name)
        if name in self._catalog:
            return None

        try:
            tag = await self._description_store.insert_one(self.household_id, name)
        except PersistenceFailure as e:
            await self._audit_logger.log_save_failed(
                household_id=self.household_id,
                operation="add_description",
                error_message=str(e),
            )
            raise

        await self._audit_logger.log_description_added(self.household_id, name)
        return tag


class AppComponents:
    """
    Everything the app needs, wired once at startup.

    The ledger itself depends on the household, so it is opened on demand
    with open_ledger() after the session manager has one.
    """

    def __init__(
        self,
        session_manager: HouseholdSessionManager,
        ledger_store: LedgerStoreInterface,
        description_store: DescriptionTagStoreInterface,
        audit_logger: AuditLogger,
        recognition_service: Optional[RecognitionServiceInterface] = None,
        sheets_client: Optional[GoogleSheetsClient] = None,
    ):
        self.session_manager = session_manager
        self.ledger_store = ledger_store
        self.description_store = description_store
        self.audit_logger = audit_logger
        self.sheets_client = sheets_client
        self._recognition_service = recognition_service

    @property
    def recognition_service(self) -> RecognitionServiceInterface:
        """Created on first use; needs GEMINI_API_KEY."""
        if self._recognition_service is None:
            self._recognition_service = GeminiRecognitionService()
        return self._recognition_service

    async def open_ledger(self) -> HouseholdLedger:
        """
        Open and start the current household's ledger.

        Raises:
            NoHouseholdError: If no household has been joined or created
        """
        ledger = HouseholdLedger(
            session=self.session_manager.require(),
            ledger_store=self.ledger_store,
            description_store=self.description_store,
            audit_logger=self.audit_logger,
            validator=TransactionValidator(get_settings().app.max_installments),
        )
        await ledger.start()
        return ledger


def create_app_components(
    session_store: Optional[SessionStoreInterface] = None,
    use_sheets: bool = True,
    recognition_service: Optional[RecognitionServiceInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        session_store: Where the household session is kept.
                      Defaults to the JSON file from AppSettings.
        use_sheets: Whether to initialize Google Sheets storage.
                   Set to False for tests and local runs.
        recognition_service: Overrides the Gemini service.
    """
    sheets_client = None
    audit_storage: Optional[AuditStorageInterface] = None
    ledger_store: LedgerStoreInterface
    description_store: DescriptionTagStoreInterface

    if use_sheets:
        status = validate_all_settings()
        logger.info("settings_checked", **status)
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            ledger_store = GoogleSheetsLedgerStore(sheets_client)
            description_store = GoogleSheetsDescriptionTagStore(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("sheets_unavailable", error=str(e))
            sheets_client = None
            audit_storage = None
            ledger_store = InMemoryLedgerStore()
            description_store = InMemoryDescriptionTagStore()
    else:
        ledger_store = InMemoryLedgerStore()
        description_store = InMemoryDescriptionTagStore()

    audit_logger = AuditLogger(audit_storage)
    session_manager = HouseholdSessionManager(
        session_store or FileSessionStore(),
        audit_logger=audit_logger,
    )

    return AppComponents(
        session_manager=session_manager,
        ledger_store=ledger_store,
        description_store=description_store,
        audit_logger=audit_logger,
        recognition_service=recognition_service,
        sheets_client=sheets_client,
    )
