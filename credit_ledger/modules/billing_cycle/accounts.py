# -*- coding: utf-8 -*-
"""
credit_ledger/modules/billing_cycle/accounts.py

Registro de cuentas (colaborador externo).

El motor sólo necesita id, plan, estado activo y fecha de borrado de cada
cuenta. Implementaciones:
- StaticAccountRegistry: lista explícita (tests, scripts)
- SqlAccountRegistry: lee la tabla de cuentas de la aplicación host;
  nombres de tabla/columnas configurables (CREDITS_ACCOUNTS_*)

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import column, select, table
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.shared.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountRecord:
    """Vista mínima de una cuenta para el ciclo mensual."""
    account_id: UUID
    plan: Optional[str]
    is_active: bool = True
    deleted_at: Optional[datetime] = None


@runtime_checkable
class AccountRegistry(Protocol):
    async def list_accounts(self, session: AsyncSession) -> List[AccountRecord]:
        ...


class StaticAccountRegistry:
    """Registro en memoria con una lista fija de cuentas."""

    def __init__(self, accounts: Iterable[AccountRecord]):
        self._accounts = list(accounts)

    async def list_accounts(self, session: AsyncSession) -> List[AccountRecord]:
        return list(self._accounts)


class SqlAccountRegistry:
    """
    Lee las cuentas de la tabla del host con construcciones ligeras
    (sqlalchemy.table / column): no requiere un modelo ORM del host.
    """

    def __init__(
        self,
        table_name: str = "accounts",
        *,
        id_column: str = "id",
        plan_column: str = "plan",
        active_column: str = "is_active",
        deleted_column: Optional[str] = "deleted_at",
    ):
        self.table_name = table_name
        self.id_column = id_column
        self.plan_column = plan_column
        self.active_column = active_column
        self.deleted_column = deleted_column

    @classmethod
    def from_settings(cls) -> "SqlAccountRegistry":
        settings = get_settings()
        return cls(
            settings.credits_accounts_table,
            id_column=settings.credits_accounts_id_column,
            plan_column=settings.credits_accounts_plan_column,
            active_column=settings.credits_accounts_active_column,
            deleted_column=settings.credits_accounts_deleted_column,
        )

    async def list_accounts(self, session: AsyncSession) -> List[AccountRecord]:
        columns = [
            column(self.id_column),
            column(self.plan_column),
            column(self.active_column),
        ]
        if self.deleted_column:
            columns.append(column(self.deleted_column))
        accounts = table(self.table_name, *columns)

        stmt = select(*accounts.c).order_by(accounts.c[self.id_column])
        rows = (await session.execute(stmt)).all()

        records: List[AccountRecord] = []
        for row in rows:
            raw_id = row[0]
            account_id = raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id))
            records.append(
                AccountRecord(
                    account_id=account_id,
                    plan=row[1],
                    is_active=bool(row[2]),
                    deleted_at=row[3] if self.deleted_column else None,
                )
            )
        logger.debug("Loaded %d accounts from %s", len(records), self.table_name)
        return records


__all__ = [
    "AccountRecord",
    "AccountRegistry",
    "StaticAccountRegistry",
    "SqlAccountRegistry",
]
