# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/schemas.py

Esquemas Pydantic del motor de créditos: opciones de entrada de las
operaciones y modelos de salida (snapshots, resultados, páginas de ledger).

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from credit_ledger.shared.utils.datetime_helpers import ensure_utc_optional
from .enums import CreditType, TransactionType


class _UtcModel(BaseModel):
    """Normaliza a UTC los datetimes leídos de la BD (SQLite los entrega naive)."""

    @field_validator("*", mode="after")
    @classmethod
    def _datetimes_as_utc(cls, v):
        if isinstance(v, datetime):
            return ensure_utc_optional(v)
        return v


# =============================================================================
# Opciones de entrada
# =============================================================================

class CreditOptions(BaseModel):
    """Opciones de un abono (credit)."""

    credit_type: CreditType = Field(description="Bolsa a incrementar.")
    transaction_type: TransactionType = Field(description="Motivo del abono.")
    idempotency_key: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    created_by: Optional[str] = None


class DebitOptions(BaseModel):
    """Opciones de un cargo por uso de feature."""

    feature_type: str = Field(min_length=1, max_length=64)
    idempotency_key: str = Field(min_length=1, max_length=200)
    feature_metadata: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    created_by: Optional[str] = None


class RefundOptions(BaseModel):
    """Opciones de un reembolso de cargo fallido."""

    feature_type: str = Field(min_length=1, max_length=64)
    feature_metadata: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    created_by: Optional[str] = None


# =============================================================================
# Modelos de salida
# =============================================================================

class BalanceSnapshot(_UtcModel):
    """Foto del saldo de una cuenta."""

    account_id: UUID
    included_credits: int = 0
    purchased_credits: int = 0
    total_credits: int = 0
    included_credits_expire_at: Optional[datetime] = None
    last_monthly_grant_at: Optional[datetime] = None

    @classmethod
    def empty(cls, account_id: UUID) -> "BalanceSnapshot":
        return cls(account_id=account_id)

    @classmethod
    def from_balance(cls, balance) -> "BalanceSnapshot":
        return cls(
            account_id=balance.account_id,
            included_credits=balance.included_credits,
            purchased_credits=balance.purchased_credits,
            total_credits=balance.included_credits + balance.purchased_credits,
            included_credits_expire_at=balance.included_credits_expire_at,
            last_monthly_grant_at=balance.last_monthly_grant_at,
        )


class LedgerEntryRead(_UtcModel):
    """Movimiento del ledger tal como se expone hacia afuera."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    account_id: UUID
    amount: int
    balance_after: int
    credit_type: CreditType
    transaction_type: TransactionType
    feature_type: Optional[str] = None
    idempotency_key: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="entry_metadata")
    created_by: Optional[str] = None
    created_at: datetime


class LedgerResult(BaseModel):
    """
    Resultado de una operación que modifica saldo.

    applied=False indica que la clave de idempotencia ya estaba registrada
    (reintento o carrera perdida) o que no había nada que aplicar; en ese
    caso entries contiene los movimientos originales, si existen.
    """

    applied: bool
    entries: list[LedgerEntryRead] = Field(default_factory=list)
    balance: BalanceSnapshot

    @property
    def amount(self) -> int:
        """Suma con signo de los movimientos del resultado."""
        return sum(e.amount for e in self.entries)

    @property
    def balance_after(self) -> int:
        return self.balance.total_credits


class LedgerPage(BaseModel):
    """Página del historial de movimientos (más recientes primero)."""

    entries: list[LedgerEntryRead]
    total: int
    limit: int
    offset: int


class CreditCheck(BaseModel):
    """Verificación previa de saldo (no modifica nada)."""

    has_credits: bool
    required: int
    available: int
    balance: BalanceSnapshot


class ReconciliationReport(BaseModel):
    """Comparación entre el saldo denormalizado y la suma del ledger."""

    account_id: UUID
    included_balance: int
    purchased_balance: int
    included_ledger: int
    purchased_ledger: int

    @computed_field  # type: ignore[misc]
    @property
    def is_consistent(self) -> bool:
        return (
            self.included_balance == self.included_ledger
            and self.purchased_balance == self.purchased_ledger
        )


__all__ = [
    "CreditOptions",
    "DebitOptions",
    "RefundOptions",
    "BalanceSnapshot",
    "LedgerEntryRead",
    "LedgerResult",
    "LedgerPage",
    "CreditCheck",
    "ReconciliationReport",
]

# Fin del archivo credit_ledger/modules/credits/schemas.py
