# -*- coding: utf-8 -*-
"""
tests/modules/billing_cycle/test_monthly_cycle.py

Tests de MonthlyCycleController: gate de último día, force, expiración
y abono, idempotencia por mes, elegibilidad y aislamiento de errores.
"""

import logging
import uuid
from datetime import datetime, timezone

import pytest

from credit_ledger.modules.billing_cycle.accounts import AccountRecord, StaticAccountRegistry
from credit_ledger.modules.billing_cycle.service import (
    MonthlyCycleController,
    monthly_expire_key,
    monthly_grant_key,
)
from credit_ledger.modules.credits.enums import CreditType, TransactionType
from credit_ledger.modules.credits.schemas import CreditOptions

UTC = timezone.utc
LAST_DAY = datetime(2026, 10, 31, 0, 5, tzinfo=UTC)
MID_MONTH = datetime(2026, 10, 18, 0, 5, tzinfo=UTC)


def _account(plan="grower", **kw):
    return AccountRecord(account_id=uuid.uuid4(), plan=plan, **kw)


async def _credit(service, session, account_id, amount, credit_type, key):
    tx = TransactionType.MONTHLY_GRANT if credit_type is CreditType.INCLUDED else TransactionType.PURCHASE
    await service.credit(
        session, account_id, amount,
        CreditOptions(credit_type=credit_type, transaction_type=tx, idempotency_key=key),
    )
    await session.commit()


def test_idempotency_keys():
    account_id = uuid.UUID("00000000-0000-0000-0000-000000000001")
    assert monthly_grant_key(account_id, "2026-11") == f"monthly_grant:{account_id}:2026-11"
    assert monthly_expire_key(account_id, "2026-11") == f"monthly_expire:{account_id}:2026-11"


class TestGate:

    async def test_skips_when_not_last_day(self, db_session, service):
        acct = _account()
        controller = MonthlyCycleController(db_session, StaticAccountRegistry([acct]), service)

        report = await controller.run(now=MID_MONTH)

        assert report.status == "skipped"
        assert report.reason == "not_last_day_of_month"
        assert report.results == []
        assert (await service.get_balance(db_session, acct.account_id)).total_credits == 0

    async def test_force_bypasses_gate(self, db_session, service):
        acct = _account("builder")
        controller = MonthlyCycleController(db_session, StaticAccountRegistry([acct]), service)

        report = await controller.run(now=MID_MONTH, force=True)

        assert report.status == "completed"
        assert report.forced is True
        assert report.month_key == "2026-11"
        assert report.processed == 1
        balance = await service.get_balance(db_session, acct.account_id)
        assert balance.included_credits == 200
        assert balance.included_credits_expire_at == datetime(2026, 12, 1, tzinfo=UTC)


class TestProcessing:

    async def test_expire_then_grant(self, db_session, service):
        acct = _account("grower")
        await _credit(service, db_session, acct.account_id, 30, CreditType.INCLUDED, "old-grant")
        await _credit(service, db_session, acct.account_id, 5, CreditType.PURCHASED, "bought")

        report = await MonthlyCycleController(
            db_session, StaticAccountRegistry([acct]), service
        ).run(now=LAST_DAY)

        assert report.processed == 1
        result = report.results[0]
        assert result.status == "processed"
        assert (result.expired, result.granted) == (30, 100)

        balance = await service.get_balance(db_session, acct.account_id)
        assert (balance.included_credits, balance.purchased_credits) == (100, 5)
        assert balance.last_monthly_grant_at == LAST_DAY
        assert balance.included_credits_expire_at == datetime(2026, 12, 1, tzinfo=UTC)

        page = await service.get_ledger(db_session, acct.account_id)
        keys = [e.idempotency_key for e in page.entries]
        assert keys[:2] == [
            monthly_grant_key(acct.account_id, "2026-11"),
            monthly_expire_key(acct.account_id, "2026-11"),
        ]
        assert page.entries[1].amount == -30
        assert page.entries[0].created_by == "monthly_cycle"

    async def test_new_account_gets_balance_row(self, db_session, service):
        acct = _account("maven")

        report = await MonthlyCycleController(
            db_session, StaticAccountRegistry([acct]), service
        ).run(now=LAST_DAY)

        assert report.results[0].expired == 0
        assert (await service.get_balance(db_session, acct.account_id)).included_credits == 400

    async def test_rerun_same_month_is_noop(self, db_session, service):
        acct = _account("grower")
        registry = StaticAccountRegistry([acct])

        await MonthlyCycleController(db_session, registry, service).run(now=LAST_DAY)
        # Consumo entre corridas: la segunda no debe expirar ni abonar de nuevo
        await service.balance_repo.increment(db_session, acct.account_id, CreditType.INCLUDED, -10)
        await db_session.commit()

        report = await MonthlyCycleController(db_session, registry, service).run(now=LAST_DAY)

        assert report.processed == 0
        assert report.skipped == 1
        assert report.results[0].reason == "already_processed"
        assert (await service.get_balance(db_session, acct.account_id)).included_credits == 90

    async def test_next_month_expires_previous_grant(self, db_session, service):
        acct = _account("grower")
        registry = StaticAccountRegistry([acct])

        await MonthlyCycleController(db_session, registry, service).run(now=LAST_DAY)
        report = await MonthlyCycleController(db_session, registry, service).run(
            now=datetime(2026, 11, 30, 0, 5, tzinfo=UTC)
        )

        assert report.month_key == "2026-12"
        assert (report.results[0].expired, report.results[0].granted) == (100, 100)
        balance = await service.get_balance(db_session, acct.account_id)
        assert balance.included_credits == 100
        assert balance.included_credits_expire_at == datetime(2027, 1, 1, tzinfo=UTC)

        reconciliation = await service.reconcile(db_session, acct.account_id)
        assert reconciliation.is_consistent is True


class TestEligibility:

    async def test_ineligible_accounts_are_counted_not_processed(self, db_session, service, caplog):
        accounts = [
            _account("grower", is_active=False),
            _account("grower", deleted_at=datetime(2026, 1, 1, tzinfo=UTC)),
            _account("free"),
            _account("platinum"),
            _account("zero"),
            _account("Grower"),
        ]
        controller = MonthlyCycleController(
            db_session,
            StaticAccountRegistry(accounts),
            service,
            tier_table={"free": 0, "grower": 100, "zero": 0},
        )

        with caplog.at_level(logging.WARNING):
            report = await controller.run(now=LAST_DAY)

        assert report.ineligible == 5
        assert report.processed == 1
        reasons = [r.reason for r in report.results if r.status == "ineligible"]
        assert reasons == ["inactive", "deleted", "free_plan", "unknown_plan", "no_monthly_credits"]
        assert "unknown_plan" in caplog.text

        for acct in accounts[:5]:
            assert (await service.get_balance(db_session, acct.account_id)).total_credits == 0
        assert (await service.get_balance(db_session, accounts[5].account_id)).included_credits == 100

    async def test_tier_table_from_settings(self, db_session, service, monkeypatch):
        monkeypatch.setenv("CREDITS_TIER_CREDITS_JSON", '{"free": 0, "grower": 150}')
        from credit_ledger.shared.config import get_settings
        get_settings.cache_clear()

        acct = _account("grower")
        await MonthlyCycleController(db_session, StaticAccountRegistry([acct]), service).run(now=LAST_DAY)

        assert (await service.get_balance(db_session, acct.account_id)).included_credits == 150


class TestErrorIsolation:

    async def test_failure_in_one_account_does_not_stop_batch(self, db_session, service, monkeypatch, caplog):
        good_before, bad, good_after = _account(), _account(), _account()
        await _credit(service, db_session, bad.account_id, 40, CreditType.INCLUDED, "bad-old")

        real_credit = service.credit

        async def _failing_credit(session, account_id, amount, options):
            if account_id == bad.account_id and options.transaction_type == TransactionType.MONTHLY_GRANT:
                raise RuntimeError("simulated failure")
            return await real_credit(session, account_id, amount, options)

        monkeypatch.setattr(service, "credit", _failing_credit)

        with caplog.at_level(logging.ERROR):
            report = await MonthlyCycleController(
                db_session, StaticAccountRegistry([good_before, bad, good_after]), service
            ).run(now=LAST_DAY)

        assert report.status == "completed"
        assert (report.processed, report.errored) == (2, 1)
        errored = report.results[1]
        assert errored.status == "errored"
        assert "simulated failure" in errored.error
        assert "Monthly cycle failed for account" in caplog.text

        # La expiración de la cuenta fallida se deshizo junto con el abono
        bad_balance = await service.get_balance(db_session, bad.account_id)
        assert bad_balance.included_credits == 40
        assert not await service.ledger_repo.exists(db_session, monthly_expire_key(bad.account_id, "2026-11"))

        for acct in (good_before, good_after):
            assert (await service.get_balance(db_session, acct.account_id)).included_credits == 100

    async def test_failed_account_is_retried_next_run(self, db_session, service, monkeypatch):
        acct = _account()
        real_credit = service.credit
        calls = {"n": 0}

        async def _fail_once(session, account_id, amount, options):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("transient")
            return await real_credit(session, account_id, amount, options)

        monkeypatch.setattr(service, "credit", _fail_once)
        registry = StaticAccountRegistry([acct])

        first = await MonthlyCycleController(db_session, registry, service).run(now=LAST_DAY)
        second = await MonthlyCycleController(db_session, registry, service).run(now=LAST_DAY)

        assert first.errored == 1
        assert second.processed == 1
        assert (await service.get_balance(db_session, acct.account_id)).included_credits == 100


@pytest.mark.parametrize("now", [LAST_DAY.replace(tzinfo=None)])
async def test_naive_now_is_utc(db_session, service, now):
    report = await MonthlyCycleController(db_session, StaticAccountRegistry([]), service).run(now=now)
    assert report.status == "completed"
    assert report.month_key == "2026-11"
