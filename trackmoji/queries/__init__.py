"""Ledger aggregation package."""

from trackmoji.queries.executor import LedgerQueryExecutor

__all__ = ["LedgerQueryExecutor"]
