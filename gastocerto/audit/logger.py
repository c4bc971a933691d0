"""
Audit Logger

DESIGN DECISION: Every significant action in the ledger is logged.
This provides:
1. Complete traceability of who wrote or deleted what
2. Debugging capability for recognition and write failures
3. History of duplicate warnings and the user's decisions

The audit logger:
- Is async to not block main flow
- Never lets an audit storage failure break the action being audited
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from gastocerto.models.audit import AuditEvent, AuditEventBuilder
from gastocerto.models.transaction import TransactionRecord
from gastocerto.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("gastocerto.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_household_joined(self, household_id: str, created: bool) -> None:
        await self.log(AuditEventBuilder.household_joined(household_id, created))

    async def log_household_left(self, household_id: str) -> None:
        await self.log(AuditEventBuilder.household_left(household_id))

    async def log_recognition_completed(
        self,
        household_id: Optional[str],
        mode: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.recognition_completed(
            household_id=household_id,
            mode=mode,
            candidate_count=candidate_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_recognition_failed(
        self,
        household_id: Optional[str],
        mode: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.recognition_failed(
            household_id=household_id,
            mode=mode,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        household_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            household_id=household_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_duplicate_flagged(
        self,
        household_id: str,
        description: str,
        amount: str,
        on_date: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.duplicate_flagged(
            household_id=household_id,
            description=description,
            amount=amount,
            on_date=on_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_user_confirmed(
        self,
        household_id: str,
        description: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.user_confirmed(
            household_id=household_id,
            description=description,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_user_cancelled(
        self,
        household_id: str,
        description: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.user_cancelled(
            household_id=household_id,
            description=description,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_import_cancelled(
        self,
        household_id: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.import_cancelled(
            household_id=household_id,
            candidate_count=candidate_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_saved(
        self,
        household_id: str,
        record: TransactionRecord,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_saved(
            household_id=household_id,
            record_id=record.id,
            description=record.description,
            amount=str(record.amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_installments_saved(
        self,
        household_id: str,
        group_id: str,
        description: str,
        count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.installments_saved(
            household_id=household_id,
            group_id=group_id,
            description=description,
            count=count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_statement_imported(
        self,
        household_id: str,
        imported: int,
        candidates: int,
        duplicates_imported: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.statement_imported(
            household_id=household_id,
            imported=imported,
            candidates=candidates,
            duplicates_imported=duplicates_imported,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(self, household_id: str, record_id: str) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(household_id, record_id))

    async def log_description_added(self, household_id: str, name: str) -> None:
        await self.log(AuditEventBuilder.description_added(household_id, name))

    async def log_save_failed(
        self,
        household_id: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            household_id=household_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a statement upload).
    Pass it through all subsequent operations.
    """
    return uuid4()
