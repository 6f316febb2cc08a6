# -*- coding: utf-8 -*-
import pytest

from credit_ledger.shared.config.config_loader import get_settings
from credit_ledger.shared.config.settings_dev import DevSettings
from credit_ledger.shared.config.settings_prod import ProdSettings
from credit_ledger.shared.config.settings_testing import EnvTestingSettings


def _reset_loader_cache():
    get_settings.cache_clear()


def test_loader_returns_dev_by_default(monkeypatch):
    monkeypatch.delenv("PYTHON_ENV", raising=False)
    _reset_loader_cache()
    s = get_settings()
    assert isinstance(s, DevSettings)
    assert s.is_dev is True
    assert s.python_env == "development"
    assert s.log_level == "DEBUG"


def test_loader_selects_test(monkeypatch):
    monkeypatch.setenv("PYTHON_ENV", "test")
    _reset_loader_cache()
    s = get_settings()
    assert isinstance(s, EnvTestingSettings)
    assert s.is_test is True
    assert s.database_url.startswith("sqlite+aiosqlite")
    assert s.internal_service_token.get_secret_value() == "test-service-token"


def test_loader_selects_prod(monkeypatch):
    monkeypatch.setenv("PYTHON_ENV", "production")
    monkeypatch.setenv("APP_SERVICE_TOKEN", "X" * 40)
    _reset_loader_cache()
    s = get_settings()
    assert isinstance(s, ProdSettings)
    assert s.is_prod is True
    assert s.log_format == "json"


def test_loader_caches_singleton():
    _reset_loader_cache()
    a = get_settings()
    b = get_settings()
    assert a is b


def test_security_checks_require_token_in_prod(monkeypatch):
    monkeypatch.setenv("PYTHON_ENV", "production")
    _reset_loader_cache()
    with pytest.raises(ValueError) as ei:
        get_settings()
    assert "APP_SERVICE_TOKEN" in str(ei.value)
# Fin del archivo tests/shared/config/test_config_loader.py
