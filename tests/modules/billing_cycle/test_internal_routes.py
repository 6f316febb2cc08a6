# -*- coding: utf-8 -*-
"""
tests/modules/billing_cycle/test_internal_routes.py

Tests del endpoint interno POST /internal/credits/monthly-cycle.
"""

import uuid

import pytest

from credit_ledger.modules.billing_cycle.accounts import AccountRecord, StaticAccountRegistry
from credit_ledger.modules.billing_cycle.routes import get_account_registry

URL = "/internal/credits/monthly-cycle"
AUTH = {"Authorization": "Bearer test-service-token"}


@pytest.fixture
def accounts(app):
    records = [
        AccountRecord(account_id=uuid.uuid4(), plan="grower"),
        AccountRecord(account_id=uuid.uuid4(), plan="free"),
    ]
    app.dependency_overrides[get_account_registry] = lambda: StaticAccountRegistry(records)
    return records


async def test_requires_authorization_header(async_client, accounts):
    resp = await async_client.post(URL)
    assert resp.status_code == 401


async def test_rejects_bad_format(async_client, accounts):
    resp = await async_client.post(URL, headers={"Authorization": "Token test-service-token"})
    assert resp.status_code == 401


async def test_rejects_wrong_token(async_client, accounts):
    resp = await async_client.post(URL, headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 403


async def test_forced_run(async_client, accounts, db_session, service):
    resp = await async_client.post(URL, params={"force": "true"}, headers=AUTH)

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert body["forced"] is True
    assert body["processed"] == 1
    assert body["ineligible"] == 1
    assert (await service.get_balance(db_session, accounts[0].account_id)).included_credits == 100

    # Segunda corrida del mismo mes: nada que hacer
    resp = await async_client.post(URL, params={"force": "true"}, headers=AUTH)
    assert resp.json()["skipped"] == 1
    assert resp.json()["processed"] == 0


async def test_token_not_configured(async_client, accounts, monkeypatch):
    monkeypatch.setenv("APP_SERVICE_TOKEN", "")
    from credit_ledger.shared.config import get_settings
    get_settings.cache_clear()

    resp = await async_client.post(URL, headers=AUTH)
    assert resp.status_code == 500
