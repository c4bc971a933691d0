"""Services package."""

from gastocerto.services.recognition import (
    GeminiRecognitionService,
    RecognitionFailure,
    RecognitionServiceInterface,
)
from gastocerto.services.storage import (
    AuditStorageInterface,
    DescriptionTagStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDescriptionTagStore,
    GoogleSheetsLedgerStore,
    InMemoryAuditStorage,
    InMemoryDescriptionTagStore,
    InMemoryLedgerStore,
    InMemorySessionStore,
    LedgerStoreInterface,
    NotFoundError,
    PersistenceFailure,
    SessionStoreInterface,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Recognition services
    "GeminiRecognitionService",
    "RecognitionFailure",
    "RecognitionServiceInterface",
    # Storage services
    "AuditStorageInterface",
    "DescriptionTagStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDescriptionTagStore",
    "GoogleSheetsLedgerStore",
    "InMemoryAuditStorage",
    "InMemoryDescriptionTagStore",
    "InMemoryLedgerStore",
    "InMemorySessionStore",
    "LedgerStoreInterface",
    "NotFoundError",
    "PersistenceFailure",
    "SessionStoreInterface",
    "StorageConnectionError",
    "StorageError",
]
