"""
AI Agents for Trackmoji

DESIGN DECISION: Both agents delegate semantic understanding to a
schema-constrained generation call and keep everything else
deterministic: prompt text, declared schema, defaults and fallbacks.

CRITICAL BOUNDARIES:

1. TRANSACTION ANALYZER:
   - CAN: Read free text and propose a structured transaction
   - CANNOT: Persist anything (the orchestrator validates, then writes)
   - NEVER raises: any failure becomes a degraded analysis with `error` set

2. TRANSACTION QUERY ENGINE:
   - CAN: Answer a question from the user's full transaction list
   - CANNOT: See any data it was not handed
   - NEVER raises: any failure becomes an apology answer with `error` set

The LLM is a TRANSLATOR, not a BOOKKEEPER.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import UUID

import structlog
from pydantic import BaseModel

from trackmoji.agents.client import (
    StructuredGenerator,
    array_of,
    number,
    object_schema,
    string,
)
from trackmoji.audit import AuditLogger
from trackmoji.models.ledger import QueryAnswer, TransactionAnalysis


logger = structlog.get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# OUTPUT SCHEMAS
# =============================================================================

ANALYSIS_SCHEMA = object_schema(
    properties={
        "type": string(
            "Transaction type: 'debit' or 'credit' (debit means money spent, "
            "credit means money received)"
        ),
        "amount": number(
            "The numerical amount of money involved in the transaction"
        ),
        "description": string(
            "A clean description of what the transaction is about"
        ),
        "category": string(
            "A category for the transaction (e.g., food, transportation, salary, gift, etc.)"
        ),
        "source": string(
            "The source of funds in case of credit, or the recipient in case of debit"
        ),
        "date": string(
            "The transaction date in ISO format, inferred if mentioned, otherwise today's date"
        ),
        "confidence": number(
            "A number between 0 and 1 indicating confidence in this analysis"
        ),
    },
    required=["type", "amount", "description", "category", "source", "date", "confidence"],
)

QUERY_SCHEMA = object_schema(
    properties={
        "answer": string(
            "Detailed answer to the user's question about their financial data"
        ),
        "insights": array_of(
            string(),
            "Financial insights extracted from the data relevant to the question",
        ),
        "suggestedCategories": array_of(
            string(),
            "List of spending categories found in the data",
        ),
        "relevantTransactions": array_of(
            object_schema(
                properties={
                    "id": string(),
                    "amount": number(),
                    "description": string(),
                    "date": string(),
                },
            ),
            "List of transactions that are most relevant to the query",
        ),
        "totalAmount": number(
            "Total amount related to the query, if applicable"
        ),
    },
    required=["answer"],
)


class TransactionAnalyzer:
    """
    Turns free text into a TransactionAnalysis.

    RESPONSIBILITIES:
    - Classify direction of money flow (credit vs debit)
    - Extract amount, description, category, source and date
    - Default a missing date to now

    BOUNDARIES:
    - NEVER persists data
    - NEVER raises to the caller
    """

    def __init__(
        self,
        client: StructuredGenerator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._audit_logger = audit_logger

    @staticmethod
    def build_prompt(text: str) -> str:
        """Analysis prompt; direction of flow decides the type, not the verb."""
        return f"""Analyze this financial transaction: "{text}"

IMPORTANT INSTRUCTION: Pay very close attention to the direction of money flow.

- If someone gave/paid/sent money TO the user, or user received/got/earned money, it's a CREDIT transaction
- If the user spent/paid/gave money, or money went OUT from the user, it's a DEBIT transaction

Examples:
- "received 500 from mom" = CREDIT (money came TO the user)
- "srijit gave rs 1000" = CREDIT (money came TO the user)
- "ram gave 50 rupees" = CREDIT (money came TO the user)
- "spent 25 on coffee" = DEBIT (money went OUT from the user)
- "paid 1000 to landlord" = DEBIT (money went OUT from the user)
- "bought groceries for 500" = DEBIT (money went OUT from the user)

Analyze the transaction carefully and determine the correct type."""

    async def analyze(
        self,
        text: str,
        user_phone: str,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionAnalysis:
        """
        Analyze one free-text transaction.

        Returns a degraded analysis (type "unknown", amount 0, confidence 0,
        `error` set) instead of raising.
        """
        try:
            payload = await self._client.generate(
                self.build_prompt(text),
                ANALYSIS_SCHEMA,
            )
            if not payload.get("date"):
                payload["date"] = _now_iso()
            analysis = TransactionAnalysis.model_validate(payload)
        except Exception as e:
            logger.error(
                "transaction_analysis_failed",
                user_phone=user_phone,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self._audit_logger:
                self._audit_logger.log_generation_failed(
                    use_case="transaction_analysis",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return self.degraded(text, str(e))

        logger.info(
            "transaction_analyzed",
            user_phone=user_phone,
            type=analysis.type,
            amount=None if analysis.amount is None else str(analysis.amount),
            confidence=analysis.confidence,
        )
        return analysis

    @staticmethod
    def degraded(text: str, error_message: str) -> TransactionAnalysis:
        """The usable-shape fallback returned when analysis fails."""
        return TransactionAnalysis(
            type="unknown",
            amount=0,
            description=text,
            category="unknown",
            source="unknown",
            date=_now_iso(),
            confidence=0,
            error=error_message,
        )


class TransactionQueryEngine:
    """
    Answers a question against an already-fetched transaction list.

    The model sees the FULL list; no pre-aggregation happens here.
    Totals, if any, are computed by the model as instructed in the prompt.
    """

    FALLBACK_ANSWER = "I couldn't analyze your transactions properly."
    APOLOGY = "Sorry, I encountered an error while analyzing your transactions."

    def __init__(
        self,
        client: StructuredGenerator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._audit_logger = audit_logger

    @staticmethod
    def build_prompt(question: str, transactions: Sequence[Any]) -> str:
        transaction_data = json.dumps(
            [_as_json(t) for t in transactions],
            default=str,
        )

        return f"""
You are a financial assistant analyzing transaction data.

Question: "{question}"

User's transaction data:
{transaction_data}

IMPORTANT: Remember that CREDIT transactions mean money coming IN to the user (received money),
and DEBIT transactions mean money going OUT from the user (spent money).

Based on this transaction data, please answer the question in a structured format.
Be precise with numbers and calculations. If asked about spending in a specific category,
time period, or other specific aspect, focus on that.

When calculating balances or totals:
- Add up all CREDIT transactions (money received)
- Subtract all DEBIT transactions (money spent)
- The result is the user's current balance
"""

    async def query(
        self,
        question: str,
        transactions: Sequence[Any],
        user_phone: str,
        correlation_id: Optional[UUID] = None,
    ) -> QueryAnswer:
        """
        Answer `question` from `transactions`.

        Missing fields in the model output are defaulted; any failure
        returns the apology answer with `error` set.
        """
        try:
            payload = await self._client.generate(
                self.build_prompt(question, transactions),
                QUERY_SCHEMA,
            )
            answer = QueryAnswer(
                answer=payload.get("answer") or self.FALLBACK_ANSWER,
                insights=payload.get("insights") or [],
                suggested_categories=payload.get("suggestedCategories") or [],
                relevant_transactions=payload.get("relevantTransactions") or [],
                total_amount=payload.get("totalAmount") or 0,
            )
        except Exception as e:
            logger.error(
                "transaction_query_failed",
                user_phone=user_phone,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self._audit_logger:
                self._audit_logger.log_generation_failed(
                    use_case="transaction_query",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return QueryAnswer(answer=self.APOLOGY, error=str(e))

        logger.info(
            "transaction_query_answered",
            user_phone=user_phone,
            transaction_count=len(transactions),
            relevant_count=len(answer.relevant_transactions),
        )
        return answer


def _as_json(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json", by_alias=True)
    return item
