"""Request-scoped access to the application components."""

from fastapi import Request

from trackmoji.config import AppSettings
from trackmoji.orchestrator import (
    AppComponents,
    LedgerReader,
    QueryFlow,
    TransactionFlow,
    UserDirectory,
)


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_transaction_flow(request: Request) -> TransactionFlow:
    return get_components(request).transactions


def get_query_flow(request: Request) -> QueryFlow:
    return get_components(request).queries


def get_ledger_reader(request: Request) -> LedgerReader:
    return get_components(request).ledger


def get_user_directory(request: Request) -> UserDirectory:
    return get_components(request).users
