"""
Audit Logger

DESIGN DECISION: Every significant step of the transaction and query flows
is logged. This provides:
1. Traceability from a message to the rows it created
2. Debugging capability when the model misreads text
3. Visibility into degraded AI results

The audit logger:
- Emits structured JSON through structlog
- Gracefully handles failures (never crashes a request because logging failed)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from trackmoji.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stdout at `level`.

    structlog renders the JSON itself; the stdlib handler only prints it.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs every event as one structured line. Events are local only;
    the ledger store holds business data, not the audit trail.
    """

    def __init__(self):
        self._logger = structlog.get_logger("trackmoji.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be emitted.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    def log_transaction_received(
        self,
        user_phone: str,
        text: str,
        correlation_id: UUID,
    ) -> None:
        """Log an incoming free-text transaction."""
        self.log(AuditEventBuilder.transaction_received(
            user_phone=user_phone,
            text=text,
            correlation_id=correlation_id,
        ))

    def log_transaction_analyzed(
        self,
        user_phone: str,
        transaction_type: Optional[str],
        amount: Optional[str],
        confidence: float,
        degraded: bool,
        correlation_id: UUID,
    ) -> None:
        """Log the analyzer's result."""
        self.log(AuditEventBuilder.transaction_analyzed(
            user_phone=user_phone,
            transaction_type=transaction_type,
            amount=amount,
            confidence=confidence,
            degraded=degraded,
            correlation_id=correlation_id,
        ))

    def log_analysis_rejected(
        self,
        user_phone: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log an analysis that failed validation."""
        self.log(AuditEventBuilder.analysis_rejected(
            user_phone=user_phone,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_user_created(
        self,
        user_id: str,
        user_phone: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log user creation."""
        self.log(AuditEventBuilder.user_created(
            user_id=user_id,
            user_phone=user_phone,
            correlation_id=correlation_id,
        ))

    def log_transaction_saved(
        self,
        transaction_id: str,
        specific_id: str,
        ledger: str,
        amount: str,
        user_phone: str,
        correlation_id: UUID,
    ) -> None:
        """Log the dual write."""
        self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            specific_id=specific_id,
            ledger=ledger,
            amount=amount,
            user_phone=user_phone,
            correlation_id=correlation_id,
        ))

    def log_query_received(
        self,
        user_phone: str,
        question: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.query_received(
            user_phone=user_phone,
            question=question,
            correlation_id=correlation_id,
        ))

    def log_query_short_circuited(
        self,
        user_phone: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.query_short_circuited(
            user_phone=user_phone,
            correlation_id=correlation_id,
        ))

    def log_query_answered(
        self,
        user_phone: str,
        transaction_count: int,
        degraded: bool,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.query_answered(
            user_phone=user_phone,
            transaction_count=transaction_count,
            degraded=degraded,
            correlation_id=correlation_id,
        ))

    def log_generation_failed(
        self,
        use_case: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a structured-generation failure that was absorbed."""
        self.log(AuditEventBuilder.generation_failed(
            use_case=use_case,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new request. Pass it through all
    subsequent operations.
    """
    return uuid4()
