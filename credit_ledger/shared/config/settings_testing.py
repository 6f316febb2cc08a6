# -*- coding: utf-8 -*-
"""
credit_ledger/shared/config/settings_testing.py

Overrides para entorno de PRUEBAS (test) usando Pydantic v2.
Determinista: logging moderado, SQLite en memoria y token de servicio dummy.

Autor: DoxAI
Fecha: 2026-10-18
"""

from typing import Literal, Optional
from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict
from .settings_base import BaseAppSettings


class EnvTestingSettings(BaseAppSettings):
    # --- Identidad de entorno ---
    python_env: Literal["development", "test", "production"] = "test"

    # --- Logging en test: menos ruido ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    log_format: Literal["json", "pretty", "plain"] = "pretty"

    # --- Base de datos aislada ---
    db_url: Optional[str] = Field(default="sqlite+aiosqlite:///:memory:", validation_alias="DB_URL")

    # --- Token de servicio para endpoints internos ---
    internal_service_token: Optional[SecretStr] = Field(
        default=SecretStr("test-service-token"), validation_alias="APP_SERVICE_TOKEN"
    )

    model_config = SettingsConfigDict(
        env_file=".env.test",
        env_file_encoding="utf-8",
        extra="ignore",
    )


__all__ = ["EnvTestingSettings"]
# Fin del archivo credit_ledger/shared/config/settings_testing.py
