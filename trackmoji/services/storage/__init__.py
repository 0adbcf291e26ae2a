"""
Storage Services Package

Provides the abstract ledger interface and its SQL implementation.
"""

from trackmoji.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    RecordNotFoundError,
    StorageConnectionError,
    StorageError,
)
from trackmoji.services.storage.sql import (
    Database,
    SQLLedgerStorage,
)

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    "NAME_MAX_LENGTH",
    "PHONE_MAX_LENGTH",
    # Exceptions
    "DuplicateError",
    "RecordNotFoundError",
    "StorageConnectionError",
    "StorageError",
    # SQL implementation
    "Database",
    "SQLLedgerStorage",
]
