"""Services package."""

from trackmoji.services.storage import (
    Database,
    DuplicateError,
    LedgerStorageInterface,
    RecordNotFoundError,
    SQLLedgerStorage,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Storage services
    "Database",
    "DuplicateError",
    "LedgerStorageInterface",
    "RecordNotFoundError",
    "SQLLedgerStorage",
    "StorageConnectionError",
    "StorageError",
]
