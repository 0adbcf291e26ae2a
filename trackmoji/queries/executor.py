"""
Ledger Aggregation

DESIGN DECISION: Read-side numbers are DETERMINISTIC.
Summaries and category reports are computed here, in code, from rows that
storage returned. No model call is involved anywhere on the read side.

Totals come from the type-specific tables (credits, debits), never from
the unified transaction table.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Sequence

import structlog

from trackmoji.models.ledger import (
    CategoryReport,
    CreditRecord,
    DebitRecord,
    TransactionRecord,
    TransactionSummary,
)


logger = structlog.get_logger(__name__)

UNCATEGORIZED = "uncategorized"
UNKNOWN_SOURCE = "unknown"


class LedgerQueryExecutor:
    """
    Computes read-side views over already-fetched ledger rows.

    GUARANTEES:
    - balance == total_credit - total_debit, exactly (Decimal cents)
    - Same input rows always give the same output
    - Empty input gives zeros, never an error
    """

    def summarize(
        self,
        credits: Sequence[CreditRecord],
        debits: Sequence[DebitRecord],
    ) -> TransactionSummary:
        total_credit = sum((credit.amount for credit in credits), Decimal(0))
        total_debit = sum((debit.amount for debit in debits), Decimal(0))

        category_breakdown: dict[str, Decimal] = defaultdict(Decimal)
        for debit in debits:
            category_breakdown[debit.category or UNCATEGORIZED] += debit.amount

        source_breakdown: dict[str, Decimal] = defaultdict(Decimal)
        for credit in credits:
            source_breakdown[credit.source or UNKNOWN_SOURCE] += credit.amount

        summary = TransactionSummary(
            total_debit=total_debit,
            total_credit=total_credit,
            balance=total_credit - total_debit,
            debit_count=len(debits),
            credit_count=len(credits),
            category_breakdown=dict(category_breakdown),
            source_breakdown=dict(source_breakdown),
        )

        logger.info(
            "summary_computed",
            total_credit=str(summary.total_credit),
            total_debit=str(summary.total_debit),
            balance=str(summary.balance),
        )
        return summary

    def category_report(
        self,
        category: str,
        transactions: Sequence[TransactionRecord],
        debits: Sequence[DebitRecord],
    ) -> CategoryReport:
        """
        Build the by-category view.

        `transactions` and `debits` are independent result sets; the total
        is spent money only (matching debits), while `count` is the number
        of matching unified rows.
        """
        return CategoryReport(
            transactions=list(transactions),
            debits=list(debits),
            category=category,
            total_amount=sum((debit.amount for debit in debits), Decimal(0)),
            count=len(transactions),
        )
