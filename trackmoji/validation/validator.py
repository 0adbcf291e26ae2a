"""
Analysis Validation

DESIGN DECISION: The analyzer never raises, so every analysis (good or
degraded) goes through the same minimal validation before anything is
written. An analysis is accepted only when:

1. `type` is present and names a ledger (credit or debit, any casing)
2. `amount` is present and truthy; an amount of 0 is treated as
   "not determined", exactly like a missing amount
3. `amount` is not negative (amounts are magnitudes; the sign is the type)

A type outside {credit, debit} is rejected here instead of being written
to the unified table without a ledger-specific row.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the orchestrator turns them into a 422.
"""

from trackmoji.models.ledger import (
    TransactionAnalysis,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


class AnalysisValidator:
    """Decides whether a TransactionAnalysis can be persisted."""

    def validate(self, analysis: TransactionAnalysis) -> ValidationResult:
        issues = []

        # Type must be present
        if not analysis.type:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Transaction type could not be determined",
                severity="error",
            ))
        elif analysis.ledger is None:
            allowed = ", ".join(t.value for t in TransactionType)
            issues.append(ValidationIssue(
                field="type",
                issue_type="unsupported_value",
                message=f"Transaction type '{analysis.type}' is not one of: {allowed}",
                severity="error",
            ))

        # Falsy check: 0 counts as missing
        if not analysis.amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Transaction amount could not be determined",
                severity="error",
            ))
        elif analysis.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Transaction amount must be a magnitude, got {analysis.amount}",
                severity="error",
            ))

        if analysis.is_degraded:
            issues.append(ValidationIssue(
                field="analysis",
                issue_type="degraded",
                message=f"Analysis fell back to defaults: {analysis.error}",
                severity="warning",
            ))

        # Low confidence is surfaced but does not block
        if not analysis.is_degraded and analysis.confidence < 0.5:
            issues.append(ValidationIssue(
                field="confidence",
                issue_type="low_confidence",
                message=f"Analysis confidence is low ({analysis.confidence:.0%})",
                severity="warning",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return ValidationResult(
            is_valid=is_valid,
            ledger=analysis.ledger if is_valid else None,
            issues=issues,
        )

    @staticmethod
    def summarize(result: ValidationResult) -> str:
        """One-line reason for a rejected analysis."""
        if result.is_valid:
            return "Analysis accepted"
        errors = [issue.message for issue in result.issues if issue.severity == "error"]
        return "; ".join(errors)
