"""
Core Data Models for Trackmoji

These models define the schemas for all data flowing through the system:
1. Ephemeral AI output (TransactionAnalysis, QueryAnswer)
2. Persisted ledger rows as seen by callers (UserRecord, TransactionRecord,
   CreditRecord, DebitRecord)
3. Derived read-side views (TransactionSummary, CategoryReport)
4. HTTP request/response bodies

DESIGN DECISION: Everything crossing the HTTP boundary is serialized with
camelCase aliases (userPhone, specificTransaction, totalAmount...) while the
Python side keeps snake_case attribute names.

DESIGN DECISION: AI output models are deliberately permissive (every field
optional). The model may return anything; the validator decides what is
acceptable, never the parser.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the store keeps naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


CENTS = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    """Quantize a money value to two decimal places."""
    try:
        return value.quantize(CENTS)
    except InvalidOperation as e:
        raise ValueError(f"Amount {value} is out of range") from e


def finite_number(v: Any) -> Optional[float]:
    """`v` as a finite float, or None when it is not a usable number."""
    if v is None or isinstance(v, bool):
        return None
    try:
        value = float(v)
    except (TypeError, ValueError, OverflowError):
        return None
    return value if math.isfinite(value) else None


# Exact in Python, a plain number on the wire
Money = Annotated[
    Decimal,
    AfterValidator(to_cents),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    """Base for models exposed over HTTP."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of money flow.

    CREDIT: money flowing TO the user (received, given to the user, earned)
    DEBIT: money flowing FROM the user (spent, paid, bought)
    """
    CREDIT = "credit"
    DEBIT = "debit"

    @classmethod
    def from_label(cls, label: Any) -> Optional["TransactionType"]:
        """Map a model-supplied type label (any casing) to a ledger, or None."""
        if not isinstance(label, str):
            return None
        try:
            return cls(label.lower())
        except ValueError:
            return None


# =============================================================================
# AI OUTPUT MODELS (ephemeral)
# =============================================================================

class TransactionAnalysis(BaseModel):
    """
    Structured reading of a free-text transaction.

    CRITICAL: This is PROPOSED data straight from the model.
    It MUST pass AnalysisValidator before anything is persisted.

    When the analyzer degrades (generation failed) the `error` field
    carries the failure message and `type` is "unknown".
    """
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = Field(
        default=None,
        description="'credit' or 'debit' as returned by the model (case preserved)"
    )
    amount: Optional[Money] = Field(
        default=None,
        description="Magnitude of the transaction"
    )
    description: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = Field(
        default=None,
        description="Source of funds for credits, recipient for debits"
    )
    date: Optional[str] = Field(
        default=None,
        description="Transaction date as returned by the model (ISO-8601 expected)"
    )
    confidence: float = Field(
        default=0.0,
        description="Model confidence, clamped to [0, 1]"
    )
    error: Optional[str] = Field(
        default=None,
        description="Failure message when this is a degraded result"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Optional[Decimal]:
        """Non-numeric, non-finite and unrepresentable amounts are treated as absent."""
        if v is None or isinstance(v, bool):
            return None
        try:
            value = Decimal(str(v))
        except InvalidOperation:
            return None
        if not value.is_finite():
            return None
        try:
            return to_cents(value)
        except ValueError:
            return None

    @field_validator('confidence', mode='before')
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        """Out-of-range confidence is clamped, non-numeric becomes 0."""
        value = finite_number(v)
        if value is None:
            return 0.0
        return min(max(value, 0.0), 1.0)

    @property
    def is_degraded(self) -> bool:
        return self.error is not None

    @property
    def ledger(self) -> Optional[TransactionType]:
        return TransactionType.from_label(self.type)


class RelevantTransaction(BaseModel):
    """Lightweight reference to a transaction cited by the query engine."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    amount: Optional[float] = None
    description: Optional[str] = None
    date: Optional[str] = None

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Optional[float]:
        return finite_number(v)


class QueryAnswer(CamelModel):
    """
    Answer to a natural-language question about a user's ledger.

    Produced by TransactionQueryEngine; degraded answers carry `error`.
    """

    answer: str
    insights: list[str] = Field(default_factory=list)
    suggested_categories: list[str] = Field(default_factory=list)
    relevant_transactions: list[RelevantTransaction] = Field(default_factory=list)
    total_amount: float = 0.0
    error: Optional[str] = None

    @field_validator('total_amount', mode='before')
    @classmethod
    def coerce_total(cls, v: Any) -> float:
        """Unusable totals from the model read as 0."""
        value = finite_number(v)
        return 0.0 if value is None else value

    @property
    def is_degraded(self) -> bool:
        return self.error is not None


# =============================================================================
# LEDGER RECORDS (persisted rows as returned to callers)
# =============================================================================

class UserRecord(CamelModel):
    """A ledger owner, identified by phone."""

    id: str
    phone: str
    name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TransactionRecord(CamelModel):
    """Row of the unified transaction table."""

    id: str
    user_id: str
    amount: Money
    type: str
    description: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None
    date: datetime
    created_at: datetime


class CreditRecord(CamelModel):
    """Row of the credit table (money received)."""

    id: str
    user_id: str
    amount: Money
    source: Optional[str] = None
    description: Optional[str] = None
    date: datetime
    created_at: datetime


class DebitRecord(CamelModel):
    """Row of the debit table (money spent)."""

    id: str
    user_id: str
    amount: Money
    category: Optional[str] = None
    description: Optional[str] = None
    date: datetime
    created_at: datetime


class LedgerEntry(BaseModel):
    """
    A validated transaction ready to be written.

    One LedgerEntry produces two sibling rows: the unified transaction
    and the row in the ledger-specific table.
    """

    ledger: TransactionType
    type: str = Field(
        ...,
        description="Type label exactly as the model returned it"
    )
    amount: Money = Field(..., ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None
    date: datetime


# =============================================================================
# FLOW RESULTS
# =============================================================================

class AnalysisEcho(CamelModel):
    """Condensed analysis echoed back after a successful process call."""

    confidence: float
    category: Optional[str] = None
    source: Optional[str] = None
    date: datetime


class ProcessResult(CamelModel):
    """Outcome of recording one free-text transaction."""

    transaction: TransactionRecord
    specific_transaction: Union[CreditRecord, DebitRecord]
    analysis: AnalysisEcho


class QueryResponse(CamelModel):
    """
    Shaped answer for the query endpoint.

    Only `answer` is set when the user has no transactions yet;
    serialize with exclude_none.
    """

    answer: str
    insights: Optional[list[str]] = None
    suggested_categories: Optional[list[str]] = None
    relevant_transactions: Optional[list[RelevantTransaction]] = None
    total_amount: Optional[float] = None
    transaction_count: Optional[int] = None


class TransactionSummary(CamelModel):
    """Totals and breakdowns computed from the credit and debit tables."""

    total_debit: Money
    total_credit: Money
    balance: Money
    debit_count: int
    credit_count: int
    category_breakdown: dict[str, Money] = Field(default_factory=dict)
    source_breakdown: dict[str, Money] = Field(default_factory=dict)


class CategoryReport(CamelModel):
    """Transactions and debits whose category contains a search term."""

    transactions: list[TransactionRecord]
    debits: list[DebitRecord]
    category: str
    total_amount: Money
    count: int


class UserCreated(CamelModel):
    message: str
    user: UserRecord


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'unsupported_value', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating one TransactionAnalysis."""

    validated_at: datetime = Field(
        default_factory=utcnow
    )
    is_valid: bool
    ledger: Optional[TransactionType] = Field(
        default=None,
        description="Ledger the transaction belongs to when valid"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# HTTP REQUEST BODIES
# =============================================================================
# Fields are optional so that missing input is reported as a 400 by the
# flows rather than as a framework validation error.

class ProcessTransactionRequest(CamelModel):
    text: Optional[str] = None
    user_phone: Optional[str] = None


class QueryTransactionsRequest(CamelModel):
    question: Optional[str] = None
    user_phone: Optional[str] = None


class CreateUserRequest(CamelModel):
    user_phone: Optional[str] = None
    name: Optional[str] = None
