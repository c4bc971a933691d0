"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage:
in-memory (tests, local runs) and Google Sheets (shared household data).
"""

from gastocerto.services.storage.interface import (
    AuditStorageInterface,
    DescriptionTagStoreInterface,
    LedgerStoreInterface,
    NotFoundError,
    PersistenceFailure,
    SessionStoreInterface,
    StorageConnectionError,
    StorageError,
)
from gastocerto.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDescriptionTagStore,
    InMemoryLedgerStore,
    InMemorySessionStore,
)
from gastocerto.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDescriptionTagStore,
    GoogleSheetsLedgerStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DescriptionTagStoreInterface",
    "LedgerStoreInterface",
    "SessionStoreInterface",
    # Exceptions
    "NotFoundError",
    "PersistenceFailure",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDescriptionTagStore",
    "InMemoryLedgerStore",
    "InMemorySessionStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDescriptionTagStore",
    "GoogleSheetsLedgerStore",
]
