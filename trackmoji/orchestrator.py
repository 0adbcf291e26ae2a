"""
Main Orchestrator for Trackmoji

This module ties together all the components and defines the
end-to-end flows for:
1. Transaction processing (text → analyze → validate → user → dual write)
2. Query (question → user → full ledger → answer)
3. Ledger reads (list, summary, credits, debits, by-category)
4. User directory (create, search)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written unless the analysis passes validation
- The write path creates users implicitly; every other path requires
  the user to exist already
- Storage errors are NOT caught here; they propagate to the API boundary
- Every step is audited

This is the "glue" that ensures the system works correctly
even when the model behaves unexpectedly.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog
from dateutil import parser as date_parser

from trackmoji.agents import (
    GeminiStructuredClient,
    StructuredGenerator,
    TransactionAnalyzer,
    TransactionQueryEngine,
)
from trackmoji.audit import AuditLogger, create_correlation_id
from trackmoji.errors import (
    BadRequestError,
    NotFoundError,
    UnprocessableAnalysisError,
)
from trackmoji.models.ledger import (
    AnalysisEcho,
    CategoryReport,
    CreditRecord,
    DebitRecord,
    LedgerEntry,
    ProcessResult,
    QueryResponse,
    TransactionRecord,
    TransactionSummary,
    UserCreated,
    UserRecord,
    utcnow,
)
from trackmoji.queries import LedgerQueryExecutor
from trackmoji.services.storage import (
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    Database,
    LedgerStorageInterface,
    SQLLedgerStorage,
)
from trackmoji.validation import AnalysisValidator


logger = structlog.get_logger(__name__)

NO_TRANSACTIONS_ANSWER = "You don't have any transactions yet."


def normalize_date(value: Optional[str]) -> datetime:
    """
    Parse the model's date string into naive UTC.

    Unparseable or missing dates become the current time.
    """
    if not value:
        return utcnow()
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError, TypeError):
        logger.warning("date_unparseable", value=value)
        return utcnow()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _check_length(value: Optional[str], limit: int, label: str) -> None:
    if value and len(value) > limit:
        raise BadRequestError(f"{label} must be at most {limit} characters")


async def _require_user(
    storage: LedgerStorageInterface,
    user_phone: Optional[str],
    missing_message: str = "User phone number is required",
) -> UserRecord:
    if not user_phone:
        raise BadRequestError(missing_message)
    user = await storage.get_user_by_phone(user_phone)
    if user is None:
        logger.warning("user_not_found", user_phone=user_phone)
        raise NotFoundError("User not found")
    return user


class TransactionFlow:
    """
    Orchestrates recording a free-text transaction.

    Flow:
    1. Validate input → text and userPhone are both required, phone fits storage
    2. Analyze → model proposes a structured transaction (never raises)
    3. Validate analysis → reject with 422 if unusable
    4. Resolve user → implicit create on first transaction
    5. Normalize date → fall back to now
    6. Persist → unified row + credit/debit row, atomically

    There are no retries: a failed generation degrades and is rejected
    at step 3.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        analyzer: TransactionAnalyzer,
        validator: Optional[AnalysisValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._analyzer = analyzer
        self._validator = validator or AnalysisValidator()
        self._audit_logger = audit_logger

    async def process(
        self,
        text: Optional[str],
        user_phone: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> ProcessResult:
        correlation_id = correlation_id or create_correlation_id()

        # Step 1: Validate input
        if not text or not user_phone:
            raise BadRequestError("Missing required fields: text and userPhone")
        _check_length(user_phone, PHONE_MAX_LENGTH, "User phone number")

        logger.info("process_transaction_started", user_phone=user_phone)
        if self._audit_logger:
            self._audit_logger.log_transaction_received(
                user_phone=user_phone,
                text=text,
                correlation_id=correlation_id,
            )

        # Step 2: Analyze
        analysis = await self._analyzer.analyze(text, user_phone, correlation_id)
        if self._audit_logger:
            self._audit_logger.log_transaction_analyzed(
                user_phone=user_phone,
                transaction_type=analysis.type,
                amount=None if analysis.amount is None else str(analysis.amount),
                confidence=analysis.confidence,
                degraded=analysis.is_degraded,
                correlation_id=correlation_id,
            )

        # Step 3: Validate analysis
        validation = self._validator.validate(analysis)
        if not validation.is_valid:
            logger.warning(
                "analysis_rejected",
                user_phone=user_phone,
                reason=self._validator.summarize(validation),
            )
            if self._audit_logger:
                self._audit_logger.log_analysis_rejected(
                    user_phone=user_phone,
                    issues=[issue.model_dump() for issue in validation.issues],
                    correlation_id=correlation_id,
                )
            raise UnprocessableAnalysisError(
                "Could not clearly analyze the transaction",
                partial_analysis=analysis.model_dump(mode="json", exclude_none=True),
            )

        # Step 4: Resolve user (implicit create)
        user, created = await self._storage.get_or_create_user(user_phone)
        if created:
            logger.info("user_created_implicitly", user_id=user.id, user_phone=user_phone)
            if self._audit_logger:
                self._audit_logger.log_user_created(
                    user_id=user.id,
                    user_phone=user_phone,
                    correlation_id=correlation_id,
                )

        # Step 5: Normalize date
        transaction_date = normalize_date(analysis.date)

        # Step 6: Persist both rows in one unit of work
        entry = LedgerEntry(
            ledger=validation.ledger,
            type=analysis.type,
            amount=analysis.amount,
            description=analysis.description,
            category=analysis.category,
            source=analysis.source,
            date=transaction_date,
        )
        transaction, specific = await self._storage.record_transaction(user.id, entry)

        if self._audit_logger:
            self._audit_logger.log_transaction_saved(
                transaction_id=transaction.id,
                specific_id=specific.id,
                ledger=entry.ledger.value,
                amount=str(entry.amount),
                user_phone=user_phone,
                correlation_id=correlation_id,
            )

        return ProcessResult(
            transaction=transaction,
            specific_transaction=specific,
            analysis=AnalysisEcho(
                confidence=analysis.confidence,
                category=analysis.category,
                source=analysis.source,
                date=transaction_date,
            ),
        )


class QueryFlow:
    """
    Orchestrates answering a question about a user's ledger.

    Flow:
    1. Validate input
    2. Resolve user → must already exist
    3. Load the FULL ledger, newest first
    4. Empty ledger → canned answer, no model call
    5. Otherwise → query engine answers from the full list
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        query_engine: TransactionQueryEngine,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._query_engine = query_engine
        self._audit_logger = audit_logger

    async def query(
        self,
        question: Optional[str],
        user_phone: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> QueryResponse:
        correlation_id = correlation_id or create_correlation_id()

        if not question or not user_phone:
            raise BadRequestError("Missing required fields: question and userPhone")

        if self._audit_logger:
            self._audit_logger.log_query_received(
                user_phone=user_phone,
                question=question,
                correlation_id=correlation_id,
            )

        user = await _require_user(self._storage, user_phone)
        transactions = await self._storage.list_transactions(user.id)
        logger.info(
            "query_transactions_loaded",
            user_phone=user_phone,
            transaction_count=len(transactions),
        )

        if not transactions:
            if self._audit_logger:
                self._audit_logger.log_query_short_circuited(
                    user_phone=user_phone,
                    correlation_id=correlation_id,
                )
            return QueryResponse(answer=NO_TRANSACTIONS_ANSWER)

        answer = await self._query_engine.query(
            question,
            transactions,
            user_phone,
            correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_query_answered(
                user_phone=user_phone,
                transaction_count=len(transactions),
                degraded=answer.is_degraded,
                correlation_id=correlation_id,
            )

        return QueryResponse(
            answer=answer.answer,
            insights=answer.insights,
            suggested_categories=answer.suggested_categories,
            relevant_transactions=answer.relevant_transactions,
            total_amount=answer.total_amount,
            transaction_count=len(transactions),
        )


class LedgerReader:
    """Read-side accessors. All require the user to exist."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        executor: Optional[LedgerQueryExecutor] = None,
    ):
        self._storage = storage
        self._executor = executor or LedgerQueryExecutor()

    async def list_transactions(self, user_phone: Optional[str]) -> list[TransactionRecord]:
        user = await _require_user(self._storage, user_phone)
        transactions = await self._storage.list_transactions(user.id)
        logger.info("transactions_listed", user_phone=user_phone, count=len(transactions))
        return transactions

    async def summary(self, user_phone: Optional[str]) -> TransactionSummary:
        user = await _require_user(self._storage, user_phone)
        credits = await self._storage.list_credits(user.id)
        debits = await self._storage.list_debits(user.id)
        return self._executor.summarize(credits, debits)

    async def credits(self, user_phone: Optional[str]) -> list[CreditRecord]:
        user = await _require_user(self._storage, user_phone)
        credits = await self._storage.list_credits(user.id)
        logger.info("credits_listed", user_phone=user_phone, count=len(credits))
        return credits

    async def debits(self, user_phone: Optional[str]) -> list[DebitRecord]:
        user = await _require_user(self._storage, user_phone)
        debits = await self._storage.list_debits(user.id)
        logger.info("debits_listed", user_phone=user_phone, count=len(debits))
        return debits

    async def by_category(
        self,
        user_phone: Optional[str],
        category: Optional[str],
    ) -> CategoryReport:
        if not user_phone or not category:
            raise BadRequestError("User phone number and category are required")
        user = await _require_user(self._storage, user_phone)
        transactions = await self._storage.list_transactions(user.id, category=category)
        debits = await self._storage.list_debits(user.id, category=category)
        logger.info(
            "category_listed",
            user_phone=user_phone,
            category=category,
            transaction_count=len(transactions),
            debit_count=len(debits),
        )
        return self._executor.category_report(category, transactions, debits)


class UserDirectory:
    """Explicit user registration and lookup."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def create_user(
        self,
        user_phone: Optional[str],
        name: Optional[str] = None,
    ) -> UserCreated:
        if not user_phone:
            raise BadRequestError("Phone number is required")
        _check_length(user_phone, PHONE_MAX_LENGTH, "User phone number")
        _check_length(name, NAME_MAX_LENGTH, "Name")

        existing = await self._storage.get_user_by_phone(user_phone)
        if existing is not None:
            raise BadRequestError("User with this phone number already exists")

        # A concurrent insert surfaces as DuplicateError → 409 at the boundary
        user = await self._storage.create_user(user_phone, name or None)
        if self._audit_logger:
            self._audit_logger.log_user_created(user_id=user.id, user_phone=user_phone)

        return UserCreated(message="User created successfully", user=user)

    async def find_user(self, user_phone: Optional[str]) -> UserRecord:
        if not user_phone:
            raise BadRequestError("Missing required field: userPhone")
        user = await self._storage.get_user_by_phone(user_phone)
        if user is None:
            raise NotFoundError("User not found. Please register first.")
        return user


class AppComponents:
    """Every flow the HTTP layer needs, wired to one storage backend."""

    def __init__(
        self,
        transactions: TransactionFlow,
        queries: QueryFlow,
        ledger: LedgerReader,
        users: UserDirectory,
        storage: LedgerStorageInterface,
    ):
        self.transactions = transactions
        self.queries = queries
        self.ledger = ledger
        self.users = users
        self.storage = storage


def create_app_components(
    database: Database,
    generator: Optional[StructuredGenerator] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        database: Connected (or lazily connecting) database handle.
        generator: Structured-generation client. Defaults to Gemini;
                   pass a fake for testing without the model service.
    """
    audit_logger = AuditLogger()
    storage = SQLLedgerStorage(database)
    generator = generator or GeminiStructuredClient()

    return AppComponents(
        transactions=TransactionFlow(
            storage=storage,
            analyzer=TransactionAnalyzer(generator, audit_logger),
            audit_logger=audit_logger,
        ),
        queries=QueryFlow(
            storage=storage,
            query_engine=TransactionQueryEngine(generator, audit_logger),
            audit_logger=audit_logger,
        ),
        ledger=LedgerReader(storage),
        users=UserDirectory(storage, audit_logger),
        storage=storage,
    )
