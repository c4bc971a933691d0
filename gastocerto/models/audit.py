"""
Audit Models for the Household Ledger

Every write, every duplicate warning and every user decision is
recorded. This gives the household:
1. A history of who added or removed what
2. Debugging information when a recognition or a write fails
3. A way to reconstruct why a duplicate was imported anyway

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Household session
    HOUSEHOLD_JOINED = "household_joined"
    HOUSEHOLD_LEFT = "household_left"

    # Recognition
    RECOGNITION_COMPLETED = "recognition_completed"
    RECOGNITION_FAILED = "recognition_failed"

    # Entry and review
    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_FLAGGED = "duplicate_flagged"
    USER_CONFIRMED = "user_confirmed"
    USER_CANCELLED = "user_cancelled"
    IMPORT_CANCELLED = "import_cancelled"

    # Persistence
    TRANSACTION_SAVED = "transaction_saved"
    INSTALLMENTS_SAVED = "installments_saved"
    STATEMENT_IMPORTED = "statement_imported"
    TRANSACTION_DELETED = "transaction_deleted"
    DESCRIPTION_ADDED = "description_added"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    household_id: Optional[str] = Field(
        default=None,
        description="Household the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'statement')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "household_id": self.household_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, household_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.household_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(household_id, record, correlation_id)
        event = AuditEventBuilder.user_confirmed(household_id, "Aluguel", correlation_id)
    """

    @staticmethod
    def household_joined(household_id: str, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_JOINED,
            household_id=household_id,
            entity_type="household",
            entity_id=household_id,
            description=(
                f"Household created: {household_id}" if created
                else f"Household joined: {household_id}"
            ),
            details={"created": created},
            is_user_action=True,
        )

    @staticmethod
    def household_left(household_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_LEFT,
            household_id=household_id,
            entity_type="household",
            entity_id=household_id,
            description=f"Left household: {household_id}",
            is_user_action=True,
        )

    @staticmethod
    def recognition_completed(
        household_id: Optional[str],
        mode: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOGNITION_COMPLETED,
            household_id=household_id,
            entity_type="document",
            correlation_id=correlation_id,
            description=f"Recognition ({mode}) returned {candidate_count} candidate(s)",
            details={"mode": mode, "candidate_count": candidate_count},
        )

    @staticmethod
    def recognition_failed(
        household_id: Optional[str],
        mode: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOGNITION_FAILED,
            severity=AuditSeverity.ERROR,
            household_id=household_id,
            entity_type="document",
            correlation_id=correlation_id,
            description=f"Recognition ({mode}) failed",
            error_message=error_message,
            details={"mode": mode},
        )

    @staticmethod
    def validation_failed(
        household_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            household_id=household_id,
            entity_type="entry",
            correlation_id=correlation_id,
            description=f"Entry rejected with {len(issues)} issue(s)",
            details={"issues": issues},
        )

    @staticmethod
    def duplicate_flagged(
        household_id: str,
        description: str,
        amount: str,
        on_date: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_FLAGGED,
            severity=AuditSeverity.WARNING,
            household_id=household_id,
            entity_type="entry",
            correlation_id=correlation_id,
            description=f"Possible duplicate held for confirmation: {description}",
            details={"description": description, "amount": amount, "date": on_date},
        )

    @staticmethod
    def user_confirmed(
        household_id: str,
        description: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CONFIRMED,
            household_id=household_id,
            entity_type="entry",
            correlation_id=correlation_id,
            description=f"User confirmed possible duplicate: {description}",
            is_user_action=True,
        )

    @staticmethod
    def user_cancelled(
        household_id: str,
        description: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CANCELLED,
            household_id=household_id,
            entity_type="entry",
            correlation_id=correlation_id,
            description=f"User discarded held entry: {description}",
            is_user_action=True,
        )

    @staticmethod
    def import_cancelled(
        household_id: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_CANCELLED,
            household_id=household_id,
            entity_type="statement",
            correlation_id=correlation_id,
            description=f"Statement review closed without import ({candidate_count} candidates)",
            details={"candidate_count": candidate_count},
            is_user_action=True,
        )

    @staticmethod
    def transaction_saved(
        household_id: str,
        record_id: Optional[str],
        description: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            household_id=household_id,
            entity_type="transaction",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {description} - R$ {amount}",
            details={"description": description, "amount": amount},
        )

    @staticmethod
    def installments_saved(
        household_id: str,
        group_id: str,
        description: str,
        count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSTALLMENTS_SAVED,
            household_id=household_id,
            entity_type="installment_group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Installment purchase saved: {description} in {count} installments",
            details={"description": description, "count": count},
        )

    @staticmethod
    def statement_imported(
        household_id: str,
        imported: int,
        candidates: int,
        duplicates_imported: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_IMPORTED,
            household_id=household_id,
            entity_type="statement",
            correlation_id=correlation_id,
            description=f"Statement import: {imported} of {candidates} transactions",
            details={
                "imported": imported,
                "candidates": candidates,
                "duplicates_imported": duplicates_imported,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(household_id: str, record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            household_id=household_id,
            entity_type="transaction",
            entity_id=record_id,
            description=f"Transaction deleted: {record_id}",
            is_user_action=True,
        )

    @staticmethod
    def description_added(household_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DESCRIPTION_ADDED,
            household_id=household_id,
            entity_type="description",
            description=f"Description added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        household_id: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            household_id=household_id,
            correlation_id=correlation_id,
            description=f"Write failed: {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
