# -*- coding: utf-8 -*-
import pytest
from pydantic import ValidationError

from credit_ledger.shared.config.settings_dev import DevSettings


def test_credits_defaults():
    s = DevSettings()
    assert s.credits_debit_max_attempts == 5
    assert s.credits_ledger_page_max == 200
    assert s.credits_scheduler_enabled is False
    assert s.credits_monthly_cycle_cron == "5 0 * * *"
    assert s.credits_tier_credits_json is None
    assert s.credits_accounts_table == "accounts"
    assert s.credits_accounts_deleted_column == "deleted_at"


def test_credits_env_overrides(monkeypatch):
    monkeypatch.setenv("CREDITS_DEBIT_MAX_ATTEMPTS", "9")
    monkeypatch.setenv("CREDITS_SCHEDULER_ENABLED", "true")
    monkeypatch.setenv("CREDITS_MONTHLY_CYCLE_CRON", "0 1 * * *")
    monkeypatch.setenv("CREDITS_TIER_CREDITS_JSON", '{"maven": 500}')
    s = DevSettings()
    assert s.credits_debit_max_attempts == 9
    assert s.credits_scheduler_enabled is True
    assert s.credits_monthly_cycle_cron == "0 1 * * *"
    assert s.credits_tier_credits_json == '{"maven": 500}'


def test_invalid_cron_rejected(monkeypatch):
    monkeypatch.setenv("CREDITS_MONTHLY_CYCLE_CRON", "0 1 * *")
    with pytest.raises(ValidationError):
        DevSettings()


def test_debit_attempts_must_be_positive(monkeypatch):
    monkeypatch.setenv("CREDITS_DEBIT_MAX_ATTEMPTS", "0")
    with pytest.raises(ValidationError):
        DevSettings()


def test_blank_deleted_column_is_none(monkeypatch):
    monkeypatch.setenv("CREDITS_ACCOUNTS_DELETED_COLUMN", "  ")
    assert DevSettings().credits_accounts_deleted_column is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("postgres://u:p@h:5432/d", "postgresql+asyncpg://u:p@h:5432/d"),
        ("postgresql://u:p@h:5432/d", "postgresql+asyncpg://u:p@h:5432/d"),
        ("postgresql+asyncpg://u:p@h/d", "postgresql+asyncpg://u:p@h/d"),
    ],
)
def test_database_url_normalization(monkeypatch, raw, expected):
    monkeypatch.setenv("DB_URL", raw)
    assert DevSettings().database_url == expected


def test_database_url_from_components(monkeypatch):
    monkeypatch.setenv("DB_USER", "ledger")
    monkeypatch.setenv("DB_PASSWORD", "p@ss word")
    monkeypatch.setenv("DB_HOST", "db")
    monkeypatch.setenv("DB_NAME", "credits")
    assert DevSettings().database_url == "postgresql+asyncpg://ledger:p%40ss+word@db:5432/credits"
# Fin del archivo tests/shared/config/test_settings_base.py
