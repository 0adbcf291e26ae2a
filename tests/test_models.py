"""
Tests for Trackmoji models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with scripted external services)
3. No real API calls in tests
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from trackmoji.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from trackmoji.models.ledger import (
    LedgerEntry,
    ProcessTransactionRequest,
    QueryAnswer,
    QueryResponse,
    TransactionAnalysis,
    TransactionRecord,
    TransactionSummary,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    utcnow,
)


class TestTransactionAnalysis:
    """Tests for the permissive AI output model."""

    def test_full_payload(self):
        """Test a complete model payload."""
        analysis = TransactionAnalysis.model_validate({
            "type": "credit",
            "amount": 500,
            "description": "From mom",
            "category": "gift",
            "source": "mom",
            "date": "2024-05-01",
            "confidence": 0.9,
        })
        assert analysis.amount == 500.0
        assert analysis.ledger is TransactionType.CREDIT
        assert analysis.is_degraded is False

    def test_confidence_clamped_above_one(self):
        """Test out-of-range confidence is clamped to 1."""
        assert TransactionAnalysis(confidence=1.7).confidence == 1.0

    def test_confidence_clamped_below_zero(self):
        """Test negative confidence is clamped to 0."""
        assert TransactionAnalysis(confidence=-0.3).confidence == 0.0

    def test_non_numeric_confidence_is_zero(self):
        """Test non-numeric confidence becomes 0."""
        assert TransactionAnalysis(confidence="very sure").confidence == 0.0
        assert TransactionAnalysis(confidence=None).confidence == 0.0

    def test_non_numeric_amount_is_absent(self):
        """Test a non-numeric amount is treated as missing."""
        assert TransactionAnalysis(amount="lots").amount is None
        assert TransactionAnalysis(amount=True).amount is None

    def test_numeric_string_amount(self):
        """Test a numeric string amount is accepted."""
        assert TransactionAnalysis(amount="42.5").amount == Decimal("42.50")

    def test_amount_quantized_to_cents(self):
        """Test amounts are exact Decimals rounded to cents."""
        assert TransactionAnalysis(amount=0.1).amount == Decimal("0.10")
        assert TransactionAnalysis(amount="19.999").amount == Decimal("20.00")

    @pytest.mark.parametrize("amount", ["1e999", float("inf"), float("nan"), "-Infinity", "1e40"])
    def test_unrepresentable_amount_is_absent(self, amount):
        """Test infinite, NaN and out-of-range amounts are treated as missing."""
        assert TransactionAnalysis(amount=amount).amount is None

    def test_non_finite_confidence_is_zero(self):
        """Test infinite or NaN confidence becomes 0."""
        assert TransactionAnalysis(confidence=float("inf")).confidence == 0.0
        assert TransactionAnalysis(confidence=float("nan")).confidence == 0.0

    def test_ledger_is_case_insensitive(self):
        """Test type casing does not affect the ledger."""
        analysis = TransactionAnalysis(type="DEBIT")
        assert analysis.ledger is TransactionType.DEBIT
        assert analysis.type == "DEBIT"

    def test_unknown_type_has_no_ledger(self):
        """Test an unexpected type maps to no ledger."""
        assert TransactionAnalysis(type="transfer").ledger is None
        assert TransactionAnalysis(type=None).ledger is None

    def test_extra_fields_ignored(self):
        """Test unexpected model fields are dropped."""
        analysis = TransactionAnalysis.model_validate({"type": "debit", "mood": "happy"})
        assert not hasattr(analysis, "mood")


class TestTransactionType:
    """Tests for the ledger enum."""

    def test_values(self):
        """Test string values."""
        assert TransactionType.CREDIT.value == "credit"
        assert TransactionType.DEBIT.value == "debit"

    def test_from_label_rejects_non_strings(self):
        """Test non-string labels map to None."""
        assert TransactionType.from_label(1) is None


class TestSerialization:
    """Tests for camelCase wire format."""

    def test_record_dumps_camel_case(self):
        """Test records serialize with camelCase aliases."""
        now = utcnow()
        record = TransactionRecord(
            id=str(uuid4()),
            user_id="u1",
            amount=10.0,
            type="debit",
            date=now,
            created_at=now,
        )
        dumped = record.model_dump(by_alias=True)
        assert dumped["userId"] == "u1"
        assert "createdAt" in dumped

    def test_request_accepts_camel_case(self):
        """Test request bodies read camelCase keys."""
        body = ProcessTransactionRequest.model_validate(
            {"text": "spent 5", "userPhone": "+1555"}
        )
        assert body.user_phone == "+1555"

    def test_request_fields_optional(self):
        """Test missing request fields are None, not errors."""
        body = ProcessTransactionRequest.model_validate({})
        assert body.text is None
        assert body.user_phone is None

    def test_query_response_short_form(self):
        """Test the empty-ledger answer serializes as answer only."""
        response = QueryResponse(answer="You don't have any transactions yet.")
        assert response.model_dump(by_alias=True, exclude_none=True) == {
            "answer": "You don't have any transactions yet."
        }

    def test_query_answer_defaults(self):
        """Test QueryAnswer defaults."""
        answer = QueryAnswer(answer="ok")
        assert answer.insights == []
        assert answer.total_amount == 0.0
        assert answer.is_degraded is False

    def test_query_answer_drops_non_finite_numbers(self):
        """Test infinite totals and amounts from the model are not kept."""
        answer = QueryAnswer.model_validate({
            "answer": "ok",
            "totalAmount": float("inf"),
            "relevantTransactions": [{"id": "t1", "amount": "1e999"}],
        })
        assert answer.total_amount == 0.0
        assert answer.relevant_transactions[0].amount is None

    def test_money_dumps_as_json_number(self):
        """Test Decimal amounts serialize as numbers in JSON mode."""
        summary = TransactionSummary(
            total_debit=Decimal("0.30"),
            total_credit=Decimal("1.10"),
            balance=Decimal("0.80"),
            debit_count=2,
            credit_count=1,
            category_breakdown={"food": Decimal("0.30")},
        )
        dumped = summary.model_dump(mode="json", by_alias=True)
        assert dumped["totalDebit"] == 0.3
        assert dumped["balance"] == 0.8
        assert dumped["categoryBreakdown"] == {"food": 0.3}


class TestLedgerEntry:
    """Tests for the validated write model."""

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            LedgerEntry(
                ledger=TransactionType.DEBIT,
                type="debit",
                amount=-1,
                date=datetime(2024, 1, 1),
            )

    def test_utcnow_is_naive(self):
        """Test utcnow returns a naive datetime."""
        assert utcnow().tzinfo is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECEIVED,
            description="Test transaction received",
        )
        assert event.event_type == AuditEventType.TRANSACTION_RECEIVED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            description="Transaction saved",
            details={"ledger": "credit", "amount": 500},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_saved"
        assert log_dict["details"]["ledger"] == "credit"

    def test_builder_transaction_saved(self):
        """Test AuditEventBuilder.transaction_saved."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_saved(
            transaction_id="t1",
            specific_id="c1",
            ledger="credit",
            amount="500.00",
            user_phone="+1555",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.TRANSACTION_SAVED
        assert event.entity_id == "t1"
        assert event.correlation_id == correlation_id
        assert event.details["specific_id"] == "c1"

    def test_builder_degraded_analysis_is_warning(self):
        """Test a degraded analysis is logged as a warning."""
        event = AuditEventBuilder.transaction_analyzed(
            user_phone="+1555",
            transaction_type="unknown",
            amount="0.00",
            confidence=0,
            degraded=True,
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.WARNING

    def test_builder_generation_failed(self):
        """Test AuditEventBuilder.generation_failed."""
        event = AuditEventBuilder.generation_failed(
            use_case="transaction_analysis",
            error_message="boom",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "boom"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            ledger=TransactionType.DEBIT,
            issues=[
                ValidationIssue(
                    field="confidence",
                    issue_type="low_confidence",
                    message="Low confidence",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Low confidence"]

    def test_issue_severity_pattern(self):
        """Test unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
