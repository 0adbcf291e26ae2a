"""
Audit Models for Trackmoji

Every significant step of the transaction and query flows is recorded
as an audit event. This provides:
1. Traceability from a free-text message to the rows it created
2. Debugging information when the model misreads a transaction
3. Visibility into degraded (fallback) AI results

DESIGN DECISION: Audit events are append-only. They are emitted through
the structured logger and never modified afterwards.
"""

from enum import Enum
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from trackmoji.models.ledger import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transaction flow
    TRANSACTION_RECEIVED = "transaction_received"
    TRANSACTION_ANALYZED = "transaction_analyzed"
    ANALYSIS_REJECTED = "analysis_rejected"
    TRANSACTION_SAVED = "transaction_saved"

    # Users
    USER_CREATED = "user_created"

    # Query flow
    QUERY_RECEIVED = "query_received"
    QUERY_SHORT_CIRCUITED = "query_short_circuited"
    QUERY_ANSWERED = "query_answered"

    # External services
    GENERATION_FAILED = "generation_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'user', 'query')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one request)"
    )

    user_phone: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "user_phone": self.user_phone,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_received(phone, text, correlation_id)
        event = AuditEventBuilder.transaction_saved(transaction_id, ...)
    """

    @staticmethod
    def transaction_received(
        user_phone: str,
        text: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECEIVED,
            entity_type="message",
            correlation_id=correlation_id,
            user_phone=user_phone,
            description="Free-text transaction received",
            details={
                "text_length": len(text),
            },
        )

    @staticmethod
    def transaction_analyzed(
        user_phone: str,
        transaction_type: Optional[str],
        amount: Optional[str],
        confidence: float,
        degraded: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ANALYZED,
            severity=AuditSeverity.WARNING if degraded else AuditSeverity.INFO,
            entity_type="analysis",
            correlation_id=correlation_id,
            user_phone=user_phone,
            description=f"Analysis returned type={transaction_type} with {confidence:.0%} confidence",
            details={
                "type": transaction_type,
                "amount": amount,
                "confidence": confidence,
                "degraded": degraded,
            },
        )

    @staticmethod
    def analysis_rejected(
        user_phone: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="analysis",
            correlation_id=correlation_id,
            user_phone=user_phone,
            description=f"Analysis rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def user_created(
        user_id: str,
        user_phone: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CREATED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            user_phone=user_phone,
            description="User created",
        )

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        specific_id: str,
        ledger: str,
        amount: str,
        user_phone: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            user_phone=user_phone,
            description=f"Transaction saved: {ledger} {amount}",
            details={
                "ledger": ledger,
                "amount": amount,
                "specific_id": specific_id,
            },
        )

    @staticmethod
    def query_received(
        user_phone: str,
        question: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_RECEIVED,
            entity_type="query",
            correlation_id=correlation_id,
            user_phone=user_phone,
            description="Question received",
            details={
                "question_length": len(question),
            },
        )

    @staticmethod
    def query_short_circuited(
        user_phone: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_SHORT_CIRCUITED,
            entity_type="query",
            correlation_id=correlation_id,
            user_phone=user_phone,
            description="No transactions on record; model not called",
        )

    @staticmethod
    def query_answered(
        user_phone: str,
        transaction_count: int,
        degraded: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_ANSWERED,
            severity=AuditSeverity.WARNING if degraded else AuditSeverity.INFO,
            entity_type="query",
            correlation_id=correlation_id,
            user_phone=user_phone,
            description=f"Question answered over {transaction_count} transactions",
            details={
                "transaction_count": transaction_count,
                "degraded": degraded,
            },
        )

    @staticmethod
    def generation_failed(
        use_case: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GENERATION_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Structured generation failed: {use_case}",
            error_message=error_message,
            details={
                "use_case": use_case,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
