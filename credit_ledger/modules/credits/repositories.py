# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/repositories.py

Repositorios del motor de créditos.

Las mutaciones del saldo nunca hacen read-modify-write en Python:
- abonos: UPDATE ... SET col = col + :amount RETURNING
- cargos/expiraciones: compare-and-swap (WHERE con los valores leídos)

Ningún repositorio hace commit; la transacción es del llamador.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.shared.utils.datetime_helpers import utcnow
from .enums import CreditType, TransactionType
from .models import CreditBalance, CreditLedgerEntry

logger = logging.getLogger(__name__)


def _pool_column(credit_type: CreditType):
    if CreditType(credit_type) is CreditType.INCLUDED:
        return CreditBalance.included_credits
    return CreditBalance.purchased_credits


class BalanceRepository:
    """Repositorio de credit_balances."""

    async def ensure_exists(
        self,
        session: AsyncSession,
        account_id: UUID,
    ) -> bool:
        """
        Inserta la fila de saldo en cero si no existe (una sola sentencia).

        INSERT ... ON CONFLICT (account_id) DO NOTHING, en dialecto
        PostgreSQL o SQLite según el engine de la sesión.

        Returns:
            True si se creó la fila, False si ya existía.
        """
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            insert_fn = pg_insert
        elif dialect == "sqlite":
            insert_fn = sqlite_insert
        else:
            raise NotImplementedError(f"Unsupported dialect for balance upsert: {dialect}")

        now = utcnow()
        stmt = (
            insert_fn(CreditBalance.__table__)
            .values(
                account_id=account_id,
                included_credits=0,
                purchased_credits=0,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["account_id"])
        )
        result = await session.execute(stmt)
        created = result.rowcount == 1
        if created:
            logger.info("Credit balance created for account %s", account_id)
        return created

    async def get(
        self,
        session: AsyncSession,
        account_id: UUID,
        *,
        for_update: bool = False,
    ) -> Optional[CreditBalance]:
        """
        Obtiene el saldo de una cuenta.

        Siempre recarga desde la BD (populate_existing): los UPDATE atómicos
        no sincronizan el identity map.
        """
        stmt = (
            select(CreditBalance)
            .where(CreditBalance.account_id == account_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment(
        self,
        session: AsyncSession,
        account_id: UUID,
        credit_type: CreditType,
        amount: int,
    ) -> Tuple[int, int]:
        """
        Incremento atómico en sitio de una bolsa.

        Returns:
            (included_credits, purchased_credits) tras el incremento.
        """
        column = _pool_column(credit_type)
        stmt = (
            update(CreditBalance)
            .where(CreditBalance.account_id == account_id)
            .values({column: column + amount, CreditBalance.updated_at: utcnow()})
            .returning(CreditBalance.included_credits, CreditBalance.purchased_credits)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        included, purchased = result.one()
        return int(included), int(purchased)

    async def compare_and_swap(
        self,
        session: AsyncSession,
        account_id: UUID,
        *,
        expected_included: int,
        expected_purchased: int,
        new_included: int,
        new_purchased: int,
        **extra_values,
    ) -> bool:
        """
        Escribe los nuevos valores sólo si el saldo sigue siendo el leído.

        Returns:
            True si se actualizó la fila; False si otro escritor ganó.
        """
        values = {
            "included_credits": new_included,
            "purchased_credits": new_purchased,
            "updated_at": utcnow(),
        }
        values.update(extra_values)
        stmt = (
            update(CreditBalance)
            .where(
                CreditBalance.account_id == account_id,
                CreditBalance.included_credits == expected_included,
                CreditBalance.purchased_credits == expected_purchased,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def mark_monthly_grant(
        self,
        session: AsyncSession,
        account_id: UUID,
        *,
        granted_at: datetime,
        expire_at: datetime,
    ) -> None:
        """Registra la fecha del abono mensual y la expiración de included."""
        stmt = (
            update(CreditBalance)
            .where(CreditBalance.account_id == account_id)
            .values(
                last_monthly_grant_at=granted_at,
                included_credits_expire_at=expire_at,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)


class LedgerRepository:
    """Repositorio de credit_ledger (append-only)."""

    async def create(
        self,
        session: AsyncSession,
        *,
        account_id: UUID,
        amount: int,
        balance_after: int,
        credit_type: CreditType,
        transaction_type: TransactionType,
        idempotency_key: str,
        feature_type: Optional[str] = None,
        description: Optional[str] = None,
        entry_metadata: Optional[dict] = None,
        created_by: Optional[str] = None,
    ) -> CreditLedgerEntry:
        """
        Inserta un movimiento en el ledger y hace flush.

        Una clave de idempotencia repetida produce IntegrityError en el flush.
        """
        if amount == 0:
            raise ValueError("amount cannot be zero")

        entry = CreditLedgerEntry(
            account_id=account_id,
            amount=amount,
            balance_after=balance_after,
            credit_type=CreditType(credit_type).value,
            transaction_type=TransactionType(transaction_type).value,
            feature_type=feature_type,
            idempotency_key=idempotency_key,
            description=description,
            entry_metadata=entry_metadata or {},
            created_by=created_by,
        )
        session.add(entry)
        await session.flush()

        logger.debug(
            "Ledger entry created: account=%s %s/%s amount=%+d after=%d key=%s",
            account_id, entry.credit_type, entry.transaction_type, amount, balance_after, idempotency_key,
        )
        return entry

    async def get_by_idempotency_key(
        self,
        session: AsyncSession,
        idempotency_key: str,
    ) -> Optional[CreditLedgerEntry]:
        """Busca un movimiento por clave de idempotencia (única global)."""
        stmt = select(CreditLedgerEntry).where(CreditLedgerEntry.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(
        self,
        session: AsyncSession,
        idempotency_key: str,
    ) -> bool:
        stmt = select(CreditLedgerEntry.id).where(CreditLedgerEntry.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.first() is not None

    async def list_by_keys(
        self,
        session: AsyncSession,
        idempotency_keys: Iterable[str],
        *,
        account_id: Optional[UUID] = None,
    ) -> List[CreditLedgerEntry]:
        """Movimientos con cualquiera de las claves dadas, en orden de creación."""
        keys = list(idempotency_keys)
        if not keys:
            return []
        stmt = select(CreditLedgerEntry).where(CreditLedgerEntry.idempotency_key.in_(keys))
        if account_id is not None:
            stmt = stmt.where(CreditLedgerEntry.account_id == account_id)
        stmt = stmt.order_by(CreditLedgerEntry.created_at.asc(), CreditLedgerEntry.id.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_account(
        self,
        session: AsyncSession,
        account_id: UUID,
        *,
        limit: int = 50,
        offset: int = 0,
        feature_type: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> Tuple[List[CreditLedgerEntry], int]:
        """
        Lista movimientos de una cuenta, más recientes primero.

        Returns:
            (entries, total) donde total ignora limit/offset.
        """
        conditions = [CreditLedgerEntry.account_id == account_id]
        if feature_type:
            conditions.append(CreditLedgerEntry.feature_type == feature_type)
        if transaction_type:
            conditions.append(
                CreditLedgerEntry.transaction_type == TransactionType(transaction_type).value
            )

        count_stmt = select(func.count(CreditLedgerEntry.id)).where(*conditions)
        total = int((await session.execute(count_stmt)).scalar_one())

        stmt = (
            select(CreditLedgerEntry)
            .where(*conditions)
            .order_by(CreditLedgerEntry.created_at.desc(), CreditLedgerEntry.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all()), total

    async def sum_by_credit_type(
        self,
        session: AsyncSession,
        account_id: UUID,
    ) -> dict[str, int]:
        """Suma de amount por tipo de crédito (para conciliación)."""
        stmt = (
            select(CreditLedgerEntry.credit_type, func.coalesce(func.sum(CreditLedgerEntry.amount), 0))
            .where(CreditLedgerEntry.account_id == account_id)
            .group_by(CreditLedgerEntry.credit_type)
        )
        result = await session.execute(stmt)
        sums = {ct.value: 0 for ct in CreditType}
        for credit_type, total in result.all():
            sums[credit_type] = int(total)
        return sums


__all__ = ["BalanceRepository", "LedgerRepository"]
