"""
Data Models Package

This package contains all Pydantic models used in Trackmoji.
All data flowing through the system must conform to these schemas.
"""

from trackmoji.models.ledger import (
    AnalysisEcho,
    CategoryReport,
    CreateUserRequest,
    CreditRecord,
    DebitRecord,
    LedgerEntry,
    ProcessResult,
    ProcessTransactionRequest,
    QueryAnswer,
    QueryResponse,
    QueryTransactionsRequest,
    RelevantTransaction,
    TransactionAnalysis,
    TransactionRecord,
    TransactionSummary,
    TransactionType,
    UserCreated,
    UserRecord,
    ValidationIssue,
    ValidationResult,
    utcnow,
)
from trackmoji.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AnalysisEcho",
    "CategoryReport",
    "CreateUserRequest",
    "CreditRecord",
    "DebitRecord",
    "LedgerEntry",
    "ProcessResult",
    "ProcessTransactionRequest",
    "QueryAnswer",
    "QueryResponse",
    "QueryTransactionsRequest",
    "RelevantTransaction",
    "TransactionAnalysis",
    "TransactionRecord",
    "TransactionSummary",
    "TransactionType",
    "UserCreated",
    "UserRecord",
    "ValidationIssue",
    "ValidationResult",
    "utcnow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
