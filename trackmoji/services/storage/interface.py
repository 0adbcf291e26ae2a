"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Swap SQLite for PostgreSQL (or anything else) without touching flows
2. Substitute stores in tests
3. Keep business logic decoupled from the storage implementation

The interface is intentionally small - just the operations the
transaction, query and read flows need.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from trackmoji.models.ledger import (
    CreditRecord,
    DebitRecord,
    LedgerEntry,
    TransactionRecord,
    UserRecord,
)

# Widths every backend stores without truncation
PHONE_MAX_LENGTH = 32
NAME_MAX_LENGTH = 255


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the ledger store.

    Three related row kinds are kept per user: the unified transaction
    table and the type-specific credit and debit tables.
    """

    @abstractmethod
    async def get_user_by_phone(self, phone: str) -> Optional[UserRecord]:
        """
        Unique-key lookup.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_user(
        self,
        phone: str,
        name: Optional[str] = None,
    ) -> UserRecord:
        """
        Create a user.

        Raises:
            DuplicateError: If a user with this phone already exists
        """
        pass

    @abstractmethod
    async def get_or_create_user(self, phone: str) -> tuple[UserRecord, bool]:
        """
        Implicit upsert used by the write path.

        Two concurrent calls for the same phone both succeed: the loser of
        the insert race re-reads the winner's row.

        Returns:
            (user, created)
        """
        pass

    @abstractmethod
    async def record_transaction(
        self,
        user_id: str,
        entry: LedgerEntry,
    ) -> tuple[TransactionRecord, Union[CreditRecord, DebitRecord]]:
        """
        Write one transaction to the unified table and to its ledger table.

        Both rows are written in one unit of work: either both exist
        afterwards or neither does.

        Returns:
            (unified_row, ledger_specific_row)
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        category: Optional[str] = None,
    ) -> list[TransactionRecord]:
        """
        Unified rows for a user, newest date first.

        Args:
            category: case-insensitive substring filter on category
        """
        pass

    @abstractmethod
    async def list_credits(self, user_id: str) -> list[CreditRecord]:
        """Credit rows for a user, newest date first."""
        pass

    @abstractmethod
    async def list_debits(
        self,
        user_id: str,
        category: Optional[str] = None,
    ) -> list[DebitRecord]:
        """
        Debit rows for a user, newest date first.

        Args:
            category: case-insensitive substring filter on category
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check the backend is reachable."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class RecordNotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""

    def __init__(self, fields: list[str], message: Optional[str] = None):
        self.fields = list(fields)
        super().__init__(
            message or f"Unique constraint failed on the field(s): {', '.join(self.fields)}"
        )


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
