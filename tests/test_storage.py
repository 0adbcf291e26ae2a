"""Tests for SQLLedgerStorage on a throwaway SQLite database."""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from trackmoji.models.ledger import CreditRecord, DebitRecord, LedgerEntry, TransactionType
from trackmoji.services.storage import DuplicateError
from trackmoji.services.storage import sql as sql_storage


def entry(ledger, amount, date, category=None, source=None, type_label=None):
    return LedgerEntry(
        ledger=ledger,
        type=type_label or ledger.value,
        amount=amount,
        description=f"{ledger.value} of {amount}",
        category=category,
        source=source,
        date=date,
    )


class TestUsers:
    """Tests for user lookup and creation."""

    def test_create_and_find(self, run_with_storage):
        """Test a created user can be found by phone."""
        async def scenario(storage):
            created = await storage.create_user("+1555", "Asha")
            found = await storage.get_user_by_phone("+1555")
            return created, found

        created, found = run_with_storage(scenario)
        assert found == created
        assert found.name == "Asha"
        assert len(found.id) == 36

    def test_unknown_phone(self, run_with_storage):
        """Test lookup of an unknown phone returns None."""
        async def scenario(storage):
            return await storage.get_user_by_phone("+0000")

        assert run_with_storage(scenario) is None

    def test_duplicate_phone(self, run_with_storage):
        """Test the unique constraint on phone."""
        async def scenario(storage):
            await storage.create_user("+1555")
            with pytest.raises(DuplicateError) as exc_info:
                await storage.create_user("+1555")
            return exc_info.value

        error = run_with_storage(scenario)
        assert error.fields == ["phone"]

    def test_get_or_create(self, run_with_storage):
        """Test the implicit upsert creates once."""
        async def scenario(storage):
            first = await storage.get_or_create_user("+1555")
            second = await storage.get_or_create_user("+1555")
            return first, second

        (user_a, created_a), (user_b, created_b) = run_with_storage(scenario)
        assert created_a is True
        assert created_b is False
        assert user_a.id == user_b.id

    def test_get_or_create_concurrent(self, run_with_storage):
        """Test concurrent upserts for one phone resolve to one user."""
        async def scenario(storage):
            return await asyncio.gather(
                storage.get_or_create_user("+1777"),
                storage.get_or_create_user("+1777"),
            )

        results = run_with_storage(scenario)
        assert results[0][0].id == results[1][0].id


class TestRecordTransaction:
    """Tests for the dual write."""

    def test_credit_writes_both_rows(self, run_with_storage):
        """Test a credit lands in transactions and credits."""
        async def scenario(storage):
            user = await storage.create_user("+1555")
            transaction, specific = await storage.record_transaction(
                user.id,
                entry(TransactionType.CREDIT, 500, datetime(2024, 5, 1), source="mom"),
            )
            return (
                transaction,
                specific,
                await storage.list_transactions(user.id),
                await storage.list_credits(user.id),
                await storage.list_debits(user.id),
            )

        transaction, specific, transactions, credits, debits = run_with_storage(scenario)
        assert isinstance(specific, CreditRecord)
        assert transaction.amount == specific.amount == 500
        assert transaction.date == specific.date
        assert specific.source == "mom"
        assert len(transactions) == 1
        assert len(credits) == 1
        assert debits == []

    def test_amount_read_back_as_cents(self, run_with_storage):
        """Test stored amounts come back as exact Decimal cents."""
        async def scenario(storage):
            user = await storage.create_user("+1555")
            await storage.record_transaction(
                user.id, entry(TransactionType.DEBIT, Decimal("19.99"), datetime(2024, 5, 1)),
            )
            return await storage.list_debits(user.id)

        debits = run_with_storage(scenario)
        assert debits[0].amount == Decimal("19.99")

    def test_type_label_preserved(self, run_with_storage):
        """Test the unified row keeps the model's casing."""
        async def scenario(storage):
            user = await storage.create_user("+1555")
            transaction, specific = await storage.record_transaction(
                user.id,
                entry(TransactionType.DEBIT, 20, datetime(2024, 5, 1), category="Food", type_label="Debit"),
            )
            return transaction, specific

        transaction, specific = run_with_storage(scenario)
        assert transaction.type == "Debit"
        assert isinstance(specific, DebitRecord)
        assert specific.category == "Food"

    def test_failed_sibling_rolls_back(self, run_with_storage, monkeypatch):
        """Test a failing ledger row leaves no unified row behind."""
        async def scenario(storage):
            user = await storage.create_user("+1555")
            _, first_credit = await storage.record_transaction(
                user.id, entry(TransactionType.CREDIT, 10, datetime(2024, 5, 1)),
            )

            # Second credit reuses the first credit's primary key
            ids = iter(["00000000-0000-0000-0000-000000000002", first_credit.id])
            monkeypatch.setattr(sql_storage, "_new_id", lambda: next(ids))

            with pytest.raises(IntegrityError):
                await storage.record_transaction(
                    user.id, entry(TransactionType.CREDIT, 20, datetime(2024, 5, 2)),
                )
            return await storage.list_transactions(user.id), await storage.list_credits(user.id)

        transactions, credits = run_with_storage(scenario)
        assert [t.amount for t in transactions] == [10]
        assert [c.amount for c in credits] == [10]


class TestListing:
    """Tests for ordering and filters."""

    def test_newest_first(self, run_with_storage):
        """Test lists are ordered by date descending."""
        async def scenario(storage):
            user = await storage.create_user("+1555")
            for day in (3, 1, 2):
                await storage.record_transaction(
                    user.id, entry(TransactionType.DEBIT, day, datetime(2024, 5, day)),
                )
            return await storage.list_transactions(user.id), await storage.list_debits(user.id)

        transactions, debits = run_with_storage(scenario)
        assert [t.date.day for t in transactions] == [3, 2, 1]
        assert [d.date.day for d in debits] == [3, 2, 1]

    def test_category_filter_case_insensitive(self, run_with_storage):
        """Test 'food' matches 'Food' and 'FOOD delivery'."""
        async def scenario(storage):
            user = await storage.create_user("+1555")
            for category in ("Food", "FOOD delivery", "Rent", None):
                await storage.record_transaction(
                    user.id,
                    entry(TransactionType.DEBIT, 10, datetime(2024, 5, 1), category=category),
                )
            return (
                await storage.list_transactions(user.id, category="food"),
                await storage.list_debits(user.id, category="food"),
            )

        transactions, debits = run_with_storage(scenario)
        assert sorted(t.category for t in transactions) == ["FOOD delivery", "Food"]
        assert len(debits) == 2

    def test_wildcards_match_literally(self, run_with_storage):
        """Test LIKE wildcards in the filter are escaped."""
        async def scenario(storage):
            user = await storage.create_user("+1555")
            await storage.record_transaction(
                user.id, entry(TransactionType.DEBIT, 10, datetime(2024, 5, 1), category="Food"),
            )
            return await storage.list_transactions(user.id, category="%")

        assert run_with_storage(scenario) == []

    def test_rows_scoped_to_user(self, run_with_storage):
        """Test one user's rows are invisible to another."""
        async def scenario(storage):
            alice = await storage.create_user("+1111")
            bob = await storage.create_user("+2222")
            await storage.record_transaction(
                alice.id, entry(TransactionType.CREDIT, 10, datetime(2024, 5, 1)),
            )
            return await storage.list_transactions(bob.id), await storage.list_credits(bob.id)

        assert run_with_storage(scenario) == ([], [])

    def test_ping(self, run_with_storage):
        """Test the database answers SELECT 1."""
        async def scenario(storage):
            return await storage.ping()

        assert run_with_storage(scenario) is True
