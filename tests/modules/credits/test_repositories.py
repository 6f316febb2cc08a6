# -*- coding: utf-8 -*-
"""
tests/modules/credits/test_repositories.py

Tests de BalanceRepository y LedgerRepository sobre SQLite en memoria.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from credit_ledger.modules.credits.enums import CreditType, TransactionType
from credit_ledger.modules.credits.repositories import BalanceRepository, LedgerRepository


@pytest.fixture
def balance_repo():
    return BalanceRepository()


@pytest.fixture
def ledger_repo():
    return LedgerRepository()


async def _entry(ledger_repo, session, account_id, key, amount=10, **kwargs):
    params = dict(
        account_id=account_id,
        amount=amount,
        balance_after=amount,
        credit_type=CreditType.PURCHASED,
        transaction_type=TransactionType.PURCHASE,
        idempotency_key=key,
    )
    params.update(kwargs)
    return await ledger_repo.create(session, **params)


class TestBalanceRepository:

    async def test_ensure_exists_is_idempotent(self, db_session, balance_repo, account_id):
        assert await balance_repo.ensure_exists(db_session, account_id) is True
        assert await balance_repo.ensure_exists(db_session, account_id) is False

        balance = await balance_repo.get(db_session, account_id)
        assert balance.included_credits == 0
        assert balance.purchased_credits == 0

    async def test_get_missing_returns_none(self, db_session, balance_repo):
        assert await balance_repo.get(db_session, uuid.uuid4()) is None

    async def test_increment_returns_new_pools(self, db_session, balance_repo, account_id):
        await balance_repo.ensure_exists(db_session, account_id)

        assert await balance_repo.increment(db_session, account_id, CreditType.INCLUDED, 5) == (5, 0)
        assert await balance_repo.increment(db_session, account_id, CreditType.PURCHASED, 7) == (5, 7)

        balance = await balance_repo.get(db_session, account_id)
        assert (balance.included_credits, balance.purchased_credits) == (5, 7)

    async def test_compare_and_swap_requires_expected_values(self, db_session, balance_repo, account_id):
        await balance_repo.ensure_exists(db_session, account_id)
        await balance_repo.increment(db_session, account_id, CreditType.INCLUDED, 10)

        stale = await balance_repo.compare_and_swap(
            db_session, account_id,
            expected_included=9, expected_purchased=0,
            new_included=0, new_purchased=0,
        )
        assert stale is False

        fresh = await balance_repo.compare_and_swap(
            db_session, account_id,
            expected_included=10, expected_purchased=0,
            new_included=4, new_purchased=0,
        )
        assert fresh is True
        balance = await balance_repo.get(db_session, account_id)
        assert balance.included_credits == 4

    async def test_non_negative_check_constraint(self, db_session, balance_repo, account_id):
        await balance_repo.ensure_exists(db_session, account_id)
        with pytest.raises(IntegrityError):
            async with db_session.begin_nested():
                await balance_repo.increment(db_session, account_id, CreditType.PURCHASED, -1)


class TestLedgerRepository:

    async def test_zero_amount_rejected(self, db_session, ledger_repo, account_id):
        with pytest.raises(ValueError):
            await _entry(ledger_repo, db_session, account_id, "k0", amount=0)

    async def test_idempotency_key_is_globally_unique(self, db_session, ledger_repo):
        await _entry(ledger_repo, db_session, uuid.uuid4(), "same-key")
        with pytest.raises(IntegrityError):
            async with db_session.begin_nested():
                await _entry(ledger_repo, db_session, uuid.uuid4(), "same-key")

        assert await ledger_repo.exists(db_session, "same-key") is True
        assert await ledger_repo.exists(db_session, "other-key") is False

    async def test_get_by_idempotency_key(self, db_session, ledger_repo, account_id):
        created = await _entry(ledger_repo, db_session, account_id, "k1", entry_metadata={"a": 1})
        found = await ledger_repo.get_by_idempotency_key(db_session, "k1")
        assert found.id == created.id
        assert found.entry_metadata == {"a": 1}

    async def test_list_by_account_newest_first_with_filters(self, db_session, ledger_repo, account_id):
        await _entry(ledger_repo, db_session, account_id, "a1")
        await _entry(
            ledger_repo, db_session, account_id, "a2", amount=-3,
            transaction_type=TransactionType.FEATURE_DEBIT, feature_type="rank_check",
        )
        await _entry(
            ledger_repo, db_session, account_id, "a3", amount=-2,
            transaction_type=TransactionType.FEATURE_DEBIT, feature_type="rss",
        )
        await _entry(ledger_repo, db_session, uuid.uuid4(), "other")

        entries, total = await ledger_repo.list_by_account(db_session, account_id)
        assert total == 3
        assert [e.idempotency_key for e in entries] == ["a3", "a2", "a1"]

        entries, total = await ledger_repo.list_by_account(db_session, account_id, limit=1, offset=1)
        assert total == 3
        assert [e.idempotency_key for e in entries] == ["a2"]

        entries, total = await ledger_repo.list_by_account(
            db_session, account_id, transaction_type=TransactionType.FEATURE_DEBIT
        )
        assert total == 2

        entries, total = await ledger_repo.list_by_account(db_session, account_id, feature_type="rss")
        assert [e.idempotency_key for e in entries] == ["a3"]

    async def test_sum_by_credit_type(self, db_session, ledger_repo, account_id):
        await _entry(ledger_repo, db_session, account_id, "p1", amount=10)
        await _entry(ledger_repo, db_session, account_id, "i1", amount=4, credit_type=CreditType.INCLUDED)
        await _entry(ledger_repo, db_session, account_id, "i2", amount=-1, credit_type=CreditType.INCLUDED)

        sums = await ledger_repo.sum_by_credit_type(db_session, account_id)
        assert sums == {"included": 3, "purchased": 10}

    async def test_sum_by_credit_type_empty(self, db_session, ledger_repo):
        assert await ledger_repo.sum_by_credit_type(db_session, uuid.uuid4()) == {
            "included": 0,
            "purchased": 0,
        }
