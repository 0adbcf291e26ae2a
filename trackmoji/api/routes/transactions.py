"""
Transaction Endpoints

POST /transactions                          record free text
POST /transactions/query                    ask a question
GET  /transactions/{userPhone}              unified ledger
GET  /transactions/{userPhone}/summary      totals and breakdowns
GET  /transactions/{userPhone}/credits      credit ledger
GET  /transactions/{userPhone}/debits       debit ledger
GET  /transactions/{userPhone}/category/{category}
"""

from typing import Optional

from fastapi import APIRouter, Depends

from trackmoji.api.dependencies import (
    get_ledger_reader,
    get_query_flow,
    get_transaction_flow,
)
from trackmoji.api.responses import success
from trackmoji.models.ledger import (
    ProcessTransactionRequest,
    QueryTransactionsRequest,
)
from trackmoji.orchestrator import LedgerReader, QueryFlow, TransactionFlow


router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("")
async def process_transaction(
    body: Optional[ProcessTransactionRequest] = None,
    flow: TransactionFlow = Depends(get_transaction_flow),
):
    body = body or ProcessTransactionRequest()
    result = await flow.process(body.text, body.user_phone)
    return success(result, status_code=201)


@router.post("/query")
async def query_transactions(
    body: Optional[QueryTransactionsRequest] = None,
    flow: QueryFlow = Depends(get_query_flow),
):
    body = body or QueryTransactionsRequest()
    response = await flow.query(body.question, body.user_phone)
    return success(response, exclude_none=True)


@router.get("/{user_phone}")
async def get_transactions(
    user_phone: str,
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return success(await reader.list_transactions(user_phone))


@router.get("/{user_phone}/summary")
async def get_transaction_summary(
    user_phone: str,
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return success(await reader.summary(user_phone))


@router.get("/{user_phone}/credits")
async def get_user_credits(
    user_phone: str,
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return success(await reader.credits(user_phone))


@router.get("/{user_phone}/debits")
async def get_user_debits(
    user_phone: str,
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return success(await reader.debits(user_phone))


@router.get("/{user_phone}/category/{category}")
async def get_transactions_by_category(
    user_phone: str,
    category: str,
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return success(await reader.by_category(user_phone, category))
