"""
Shared test fixtures.

No real API calls: the structured-generation client is replaced by
ScriptedGenerator, and storage runs on a throwaway SQLite file.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from trackmoji.agents import GenerationError
from trackmoji.api import create_app
from trackmoji.services.storage import Database, SQLLedgerStorage


class ScriptedGenerator:
    """Returns queued payloads in order; a queued exception is raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    async def generate(self, prompt: str, schema: dict) -> dict:
        self.calls.append({"prompt": prompt, "schema": schema})
        if not self.responses:
            raise GenerationError("No scripted response left")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return dict(item)


def credit_payload(**overrides) -> dict:
    payload = {
        "type": "credit",
        "amount": 500,
        "description": "Received money from mom",
        "category": "gift",
        "source": "mom",
        "date": "2024-05-01T10:00:00Z",
        "confidence": 0.95,
    }
    payload.update(overrides)
    return payload


def debit_payload(**overrides) -> dict:
    payload = {
        "type": "debit",
        "amount": 200,
        "description": "Groceries",
        "category": "Food",
        "source": "supermarket",
        "date": "2024-05-02T10:00:00Z",
        "confidence": 0.9,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'trackmoji-test.db'}"


@pytest.fixture
def run_with_storage(database_url):
    """
    Run `scenario(storage)` on a fresh event loop.

    The engine is created and disposed inside the same loop, since pooled
    async connections cannot cross loops.
    """

    def run(scenario):
        async def main():
            database = Database(url=database_url)
            await database.connect()
            try:
                return await scenario(SQLLedgerStorage(database))
            finally:
                await database.dispose()

        return asyncio.run(main())

    return run


@pytest.fixture
def client(database_url, generator):
    app = create_app(generator=generator, database=Database(url=database_url))
    with TestClient(app) as test_client:
        yield test_client
