# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/models.py

Modelos ORM del motor de créditos.

Tablas:
- credit_balances: saldo denormalizado por cuenta (una fila por cuenta)
- credit_ledger: ledger inmutable (append-only) de movimientos

Invariante de conservación: por cuenta y por tipo de crédito, la suma de
credit_ledger.amount es igual a la bolsa correspondiente en credit_balances.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.shared.database.base import BIGINT_PK, JSON_DOCUMENT, Base
from credit_ledger.shared.utils.datetime_helpers import utcnow


class CreditBalance(Base):
    """
    Saldo de créditos de una cuenta (denormalizado para lectura rápida).

    Tabla: credit_balances

    Columnas DB:
    - id: BIGSERIAL PRIMARY KEY
    - account_id: UUID NOT NULL UNIQUE
    - included_credits: INTEGER NOT NULL DEFAULT 0
    - purchased_credits: INTEGER NOT NULL DEFAULT 0
    - included_credits_expire_at: TIMESTAMPTZ (nullable)
    - last_monthly_grant_at: TIMESTAMPTZ (nullable)
    - created_at / updated_at: TIMESTAMPTZ NOT NULL

    Constraints:
    - ck_credit_balances_included_non_negative: included_credits >= 0
    - ck_credit_balances_purchased_non_negative: purchased_credits >= 0

    La fila se crea con ensure_balance_exists y sólo el motor la modifica.
    Nunca se borra.
    """

    __tablename__ = "credit_balances"

    id: Mapped[int] = mapped_column(
        BIGINT_PK,
        primary_key=True,
        autoincrement=True,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        unique=True,
    )

    included_credits: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    purchased_credits: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    included_credits_expire_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_monthly_grant_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("included_credits >= 0", name="included_non_negative"),
        CheckConstraint("purchased_credits >= 0", name="purchased_non_negative"),
    )

    @property
    def total_credits(self) -> int:
        """Créditos totales (included + purchased)."""
        return self.included_credits + self.purchased_credits

    def __repr__(self) -> str:
        return (
            f"<CreditBalance account={self.account_id} included={self.included_credits} "
            f"purchased={self.purchased_credits}>"
        )


class CreditLedgerEntry(Base):
    """
    Ledger inmutable de movimientos de créditos.

    Tabla: credit_ledger

    Columnas DB:
    - id: BIGSERIAL PRIMARY KEY
    - account_id: UUID NOT NULL
    - amount: INTEGER NOT NULL (con signo, distinto de cero)
    - balance_after: INTEGER NOT NULL (total tras el movimiento)
    - credit_type: TEXT NOT NULL ('included' | 'purchased')
    - transaction_type: TEXT NOT NULL
    - feature_type: TEXT (nullable)
    - idempotency_key: TEXT NOT NULL UNIQUE (global)
    - description: TEXT (nullable)
    - metadata: JSONB NOT NULL DEFAULT '{}'
    - created_by: TEXT (nullable)
    - created_at: TIMESTAMPTZ NOT NULL

    Constraints:
    - uq_credit_ledger_idempotency_key: UNIQUE(idempotency_key)
    - ck_credit_ledger_amount_nonzero: amount <> 0
    - ck_credit_ledger_credit_type_valid
    """

    __tablename__ = "credit_ledger"

    id: Mapped[int] = mapped_column(
        BIGINT_PK,
        primary_key=True,
        autoincrement=True,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    balance_after: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    credit_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )

    transaction_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    feature_type: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )

    idempotency_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # "metadata" está reservado por SQLAlchemy en la clase declarativa:
    # atributo entry_metadata mapeado a la columna real "metadata"
    entry_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON_DOCUMENT,
        nullable=False,
        default=dict,
    )

    created_by: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("amount <> 0", name="amount_nonzero"),
        CheckConstraint(
            "credit_type IN ('included', 'purchased')",
            name="credit_type_valid",
        ),
        Index("ix_credit_ledger_account_created", "account_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<CreditLedgerEntry id={self.id} account={self.account_id} "
            f"{self.credit_type} {self.amount:+d} after={self.balance_after} key={self.idempotency_key}>"
        )


__all__ = ["CreditBalance", "CreditLedgerEntry"]
