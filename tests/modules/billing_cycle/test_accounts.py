# -*- coding: utf-8 -*-
"""
tests/modules/billing_cycle/test_accounts.py

Tests de los registros de cuentas (estático y SQL sobre la tabla del host).
"""

import uuid

from sqlalchemy import text

from credit_ledger.modules.billing_cycle.accounts import (
    AccountRecord,
    AccountRegistry,
    SqlAccountRegistry,
    StaticAccountRegistry,
)

ID_A = uuid.UUID("00000000-0000-0000-0000-00000000000a")
ID_B = uuid.UUID("00000000-0000-0000-0000-00000000000b")


async def test_static_registry(db_session):
    records = [AccountRecord(account_id=ID_A, plan="grower")]
    registry = StaticAccountRegistry(records)

    assert isinstance(registry, AccountRegistry)
    assert await registry.list_accounts(db_session) == records


async def test_sql_registry_default_columns(db_session):
    await db_session.execute(
        text(
            "CREATE TABLE accounts ("
            " id VARCHAR(36) PRIMARY KEY, plan VARCHAR(32), is_active BOOLEAN, deleted_at DATETIME)"
        )
    )
    await db_session.execute(
        text(
            "INSERT INTO accounts (id, plan, is_active, deleted_at) VALUES "
            "(:b, 'maven', 0, '2026-01-01 00:00:00'), (:a, 'grower', 1, NULL)"
        ),
        {"a": str(ID_A), "b": str(ID_B)},
    )

    registry = SqlAccountRegistry()
    assert isinstance(registry, AccountRegistry)
    records = await registry.list_accounts(db_session)

    assert [r.account_id for r in records] == [ID_A, ID_B]
    assert records[0].plan == "grower"
    assert records[0].is_active is True
    assert records[0].deleted_at is None
    assert records[1].is_active is False
    assert records[1].deleted_at is not None


async def test_sql_registry_custom_columns(db_session):
    await db_session.execute(
        text("CREATE TABLE users (user_id VARCHAR(36) PRIMARY KEY, tier VARCHAR(32), active BOOLEAN)")
    )
    await db_session.execute(
        text("INSERT INTO users (user_id, tier, active) VALUES (:a, 'builder', 1)"),
        {"a": str(ID_A)},
    )

    registry = SqlAccountRegistry(
        "users", id_column="user_id", plan_column="tier", active_column="active", deleted_column=None
    )
    records = await registry.list_accounts(db_session)

    assert records == [AccountRecord(account_id=ID_A, plan="builder", is_active=True)]


def test_sql_registry_from_settings(monkeypatch):
    monkeypatch.setenv("CREDITS_ACCOUNTS_TABLE", "customers")
    monkeypatch.setenv("CREDITS_ACCOUNTS_PLAN_COLUMN", "subscription_plan")
    monkeypatch.setenv("CREDITS_ACCOUNTS_DELETED_COLUMN", "")
    from credit_ledger.shared.config import get_settings
    get_settings.cache_clear()

    registry = SqlAccountRegistry.from_settings()

    assert registry.table_name == "customers"
    assert registry.plan_column == "subscription_plan"
    assert registry.id_column == "id"
    assert registry.deleted_column is None
