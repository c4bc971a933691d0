"""
Data Models Package

This package contains all Pydantic models used by the household ledger.
All data flowing through the engine must conform to these schemas.
"""

from gastocerto.models.transaction import (
    DescriptionTag,
    InstallmentInfo,
    LedgerTotals,
    TransactionEntry,
    TransactionKind,
    TransactionRecord,
    as_utc_date,
)
from gastocerto.models.household import HouseholdSession
from gastocerto.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "DescriptionTag",
    "InstallmentInfo",
    "LedgerTotals",
    "TransactionEntry",
    "TransactionKind",
    "TransactionRecord",
    "as_utc_date",
    # Household
    "HouseholdSession",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
