"""
SQL Storage Implementation

DESIGN DECISION: The ledger lives in a relational database accessed
through SQLAlchemy's asyncio extension, so request handlers only suspend
at I/O boundaries. SQLite (aiosqlite) is the default; any async driver
SQLAlchemy supports works through DATABASE_URL.

TRADEOFFS:
- The unified transaction row and its credit/debit sibling are NOT linked
  by a foreign key; they are written together in one database
  transaction instead.
- Schema is created on first connect (no migration tool).

The implementation follows the abstract interface, so flows never see
SQLAlchemy objects; rows are converted to pydantic records on the way out.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union
from uuid import uuid4

import structlog
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    select,
    text,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from trackmoji.config import DatabaseSettings, get_settings
from trackmoji.models.ledger import (
    CreditRecord,
    DebitRecord,
    LedgerEntry,
    TransactionRecord,
    TransactionType,
    UserRecord,
    utcnow,
)
from trackmoji.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    StorageConnectionError,
)


logger = structlog.get_logger(__name__)

Base = declarative_base()


def _new_id() -> str:
    return str(uuid4())


# --- Tables ---

class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    phone = Column(String(PHONE_MAX_LENGTH), unique=True, nullable=False, index=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TransactionRow(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(28, 2), nullable=False)
    type = Column(String(32), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    source = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class CreditRow(Base):
    __tablename__ = "credits"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(28, 2), nullable=False)
    source = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class DebitRow(Base):
    __tablename__ = "debits"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(28, 2), nullable=False)
    category = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Database:
    """
    Process-wide handle on the ledger database.

    Lifecycle: connect() on startup (or first use), dispose() on shutdown.
    Components receive the handle by injection; nothing looks it up globally.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        settings: Optional[DatabaseSettings] = None,
    ):
        settings = settings or (None if url else get_settings().database)
        self._url = url or settings.url
        self._echo = settings.echo if settings else False
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def connect(self) -> AsyncEngine:
        """
        Create the engine and the schema.

        Idempotent; safe to call on every startup.
        """
        if self._engine is None:
            engine = create_async_engine(self._url, echo=self._echo)
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
            except Exception as e:
                await engine.dispose()
                raise StorageConnectionError(f"Failed to connect to database: {e}") from e

            self._engine = engine
            self._session_factory = async_sessionmaker(engine, expire_on_commit=False)
            logger.info("database_connected", dialect=engine.dialect.name)

        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            await self.connect()
        async with self._session_factory() as session:
            yield session

    async def ping(self) -> bool:
        async with self.session() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("database_disposed")


class SQLLedgerStorage(LedgerStorageInterface):
    """SQLAlchemy implementation of the ledger store."""

    def __init__(self, database: Database):
        self._db = database

    async def get_user_by_phone(self, phone: str) -> Optional[UserRecord]:
        async with self._db.session() as session:
            row = await session.scalar(
                select(UserRow).where(UserRow.phone == phone)
            )
            return UserRecord.model_validate(row) if row else None

    async def create_user(
        self,
        phone: str,
        name: Optional[str] = None,
    ) -> UserRecord:
        now = utcnow()
        row = UserRow(
            id=_new_id(),
            phone=phone,
            name=name,
            created_at=now,
            updated_at=now,
        )

        async with self._db.session() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateError(
                    ["phone"],
                    f"User with phone {phone} already exists",
                ) from e

        logger.info("user_created", user_id=row.id, phone=phone)
        return UserRecord.model_validate(row)

    @retry(
        retry=retry_if_exception_type(DuplicateError),
        stop=stop_after_attempt(2),
        reraise=True,
    )
    async def get_or_create_user(self, phone: str) -> tuple[UserRecord, bool]:
        # On a lost insert race the retry finds the winner's row
        user = await self.get_user_by_phone(phone)
        if user is not None:
            return user, False
        return await self.create_user(phone), True

    async def record_transaction(
        self,
        user_id: str,
        entry: LedgerEntry,
    ) -> tuple[TransactionRecord, Union[CreditRecord, DebitRecord]]:
        now = utcnow()
        transaction = TransactionRow(
            id=_new_id(),
            user_id=user_id,
            amount=entry.amount,
            type=entry.type,
            description=entry.description,
            category=entry.category,
            source=entry.source,
            date=entry.date,
            created_at=now,
        )

        if entry.ledger is TransactionType.CREDIT:
            specific = CreditRow(
                id=_new_id(),
                user_id=user_id,
                amount=entry.amount,
                source=entry.source,
                description=entry.description,
                date=entry.date,
                created_at=now,
            )
            specific_record = CreditRecord
        else:
            specific = DebitRow(
                id=_new_id(),
                user_id=user_id,
                amount=entry.amount,
                category=entry.category,
                description=entry.description,
                date=entry.date,
                created_at=now,
            )
            specific_record = DebitRecord

        async with self._db.session() as session:
            async with session.begin():
                session.add_all([transaction, specific])

        logger.info(
            "transaction_recorded",
            transaction_id=transaction.id,
            specific_id=specific.id,
            ledger=entry.ledger.value,
            user_id=user_id,
        )
        return (
            TransactionRecord.model_validate(transaction),
            specific_record.model_validate(specific),
        )

    async def list_transactions(
        self,
        user_id: str,
        category: Optional[str] = None,
    ) -> list[TransactionRecord]:
        stmt = select(TransactionRow).where(TransactionRow.user_id == user_id)
        if category:
            stmt = stmt.where(_contains_ci(TransactionRow.category, category))
        stmt = stmt.order_by(TransactionRow.date.desc(), TransactionRow.created_at.desc())

        async with self._db.session() as session:
            rows = (await session.scalars(stmt)).all()
        return [TransactionRecord.model_validate(row) for row in rows]

    async def list_credits(self, user_id: str) -> list[CreditRecord]:
        stmt = (
            select(CreditRow)
            .where(CreditRow.user_id == user_id)
            .order_by(CreditRow.date.desc(), CreditRow.created_at.desc())
        )

        async with self._db.session() as session:
            rows = (await session.scalars(stmt)).all()
        return [CreditRecord.model_validate(row) for row in rows]

    async def list_debits(
        self,
        user_id: str,
        category: Optional[str] = None,
    ) -> list[DebitRecord]:
        stmt = select(DebitRow).where(DebitRow.user_id == user_id)
        if category:
            stmt = stmt.where(_contains_ci(DebitRow.category, category))
        stmt = stmt.order_by(DebitRow.date.desc(), DebitRow.created_at.desc())

        async with self._db.session() as session:
            rows = (await session.scalars(stmt)).all()
        return [DebitRecord.model_validate(row) for row in rows]

    async def ping(self) -> bool:
        return await self._db.ping()


def _contains_ci(column, term: str):
    """Case-insensitive substring match; LIKE wildcards in `term` match literally."""
    escaped = (
        term.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return column.ilike(f"%{escaped}%", escape="\\")
