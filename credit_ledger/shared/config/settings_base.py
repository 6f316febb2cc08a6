# -*- coding: utf-8 -*-
"""
credit_ledger/shared/config/settings_base.py

Base de configuración (Pydantic v2) del motor de créditos.
- Esta clase NO instancia singletons; eso lo hace config_loader.
- Es la base para settings_dev.py, settings_testing.py y settings_prod.py.

Autor: DoxAI
Fecha: 2026-10-18
"""

from typing import Literal, Optional
from pydantic import Field, SecretStr, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Tipos de entorno soportados
EnvName = Literal["development", "test", "production"]


class BaseAppSettings(BaseSettings):
    # =========================
    # Núcleo de la aplicación
    # =========================
    python_env: EnvName = Field(default="development", validation_alias="PYTHON_ENV")
    app_name: str = Field(default="credit-ledger", validation_alias="APP_NAME")
    app_version: str = Field(default="0.1.0", validation_alias="APP_VERSION")
    app_host: str = Field(default="0.0.0.0", validation_alias="APP_HOST")
    app_port: int = Field(default=8000, validation_alias="APP_PORT")

    # =========================
    # Logging
    # =========================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "pretty", "plain"] = Field(default="plain", validation_alias="LOG_FORMAT")

    # =========================
    # Base de datos (PostgreSQL)
    # =========================
    db_user: str = Field(default="postgres", validation_alias="DB_USER")
    db_password: SecretStr = Field(default=SecretStr("postgres"), validation_alias="DB_PASSWORD")
    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=5432, validation_alias="DB_PORT")
    db_name: str = Field(default="credits", validation_alias="DB_NAME")
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=5, validation_alias="DB_MAX_OVERFLOW")
    db_pool_pre_ping: bool = Field(default=True, validation_alias="DB_POOL_PRE_PING")
    db_echo_sql: bool = Field(default=False, validation_alias="DB_ECHO_SQL")
    db_url: Optional[str] = Field(default=None, validation_alias="DB_URL")

    @computed_field  # type: ignore[misc]
    @property
    def database_url(self) -> str:
        """
        Genera la URL de conexión completa para SQLAlchemy + asyncpg.
        Prioriza DB_URL si existe, sino construye desde componentes individuales.
        """
        from urllib.parse import quote_plus

        # Si se provee DB_URL completa, úsala (normaliza el esquema)
        if self.db_url:
            url = self.db_url
            if url.startswith("postgres://"):
                url = "postgresql+asyncpg://" + url[len("postgres://"):]
            elif url.startswith("postgresql://"):
                url = "postgresql+asyncpg://" + url[len("postgresql://"):]
            return url

        # Construye desde componentes (con password escapado)
        pw = quote_plus(self.db_password.get_secret_value())
        return (
            f"postgresql+asyncpg://{self.db_user}:{pw}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # =========================
    # Autenticación servicio-a-servicio
    # =========================
    internal_service_token: Optional[SecretStr] = Field(default=None, validation_alias="APP_SERVICE_TOKEN")

    # =========================
    # Créditos
    # =========================
    credits_tier_credits_json: Optional[str] = Field(default=None, validation_alias="CREDITS_TIER_CREDITS_JSON")
    credits_debit_max_attempts: int = Field(default=5, ge=1, validation_alias="CREDITS_DEBIT_MAX_ATTEMPTS")
    credits_ledger_page_max: int = Field(default=200, ge=1, validation_alias="CREDITS_LEDGER_PAGE_MAX")

    # Ciclo mensual
    credits_scheduler_enabled: bool = Field(default=False, validation_alias="CREDITS_SCHEDULER_ENABLED")
    credits_monthly_cycle_cron: str = Field(default="5 0 * * *", validation_alias="CREDITS_MONTHLY_CYCLE_CRON")

    # Tabla de cuentas del host (lectura para SqlAccountRegistry)
    credits_accounts_table: str = Field(default="accounts", validation_alias="CREDITS_ACCOUNTS_TABLE")
    credits_accounts_id_column: str = Field(default="id", validation_alias="CREDITS_ACCOUNTS_ID_COLUMN")
    credits_accounts_plan_column: str = Field(default="plan", validation_alias="CREDITS_ACCOUNTS_PLAN_COLUMN")
    credits_accounts_active_column: str = Field(
        default="is_active", validation_alias="CREDITS_ACCOUNTS_ACTIVE_COLUMN"
    )
    credits_accounts_deleted_column: Optional[str] = Field(
        default="deleted_at", validation_alias="CREDITS_ACCOUNTS_DELETED_COLUMN"
    )

    # ===== Helpers de entorno =====
    @computed_field  # type: ignore[misc]
    @property
    def is_dev(self) -> bool:
        return self.python_env == "development"

    @computed_field  # type: ignore[misc]
    @property
    def is_test(self) -> bool:
        return self.python_env == "test"

    @computed_field  # type: ignore[misc]
    @property
    def is_prod(self) -> bool:
        return self.python_env == "production"

    @field_validator("credits_monthly_cycle_cron")
    @classmethod
    def _validate_cron(cls, v: str) -> str:
        if len(v.split()) != 5:
            raise ValueError("CREDITS_MONTHLY_CYCLE_CRON requiere 5 campos (min hora dia mes dow)")
        return v

    @field_validator("credits_accounts_deleted_column", mode="before")
    @classmethod
    def _blank_deleted_column(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def _security_checks(self) -> None:
        """
        Validaciones mínimas de seguridad y coherencia.
        Se invoca desde config_loader tras instanciar el settings.
        """
        import logging
        logger = logging.getLogger(__name__)

        token = self.internal_service_token.get_secret_value() if self.internal_service_token else ""

        if self.is_prod and not token:
            raise ValueError("APP_SERVICE_TOKEN es requerido en producción")

        if self.is_dev and not token:
            logger.info("APP_SERVICE_TOKEN is empty; internal endpoints will answer 500")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


__all__ = ["BaseAppSettings", "EnvName"]
# Fin del archivo credit_ledger/shared/config/settings_base.py
