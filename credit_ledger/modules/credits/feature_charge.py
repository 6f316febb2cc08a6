# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/feature_charge.py

Envoltura de cobro para features: cargo -> trabajo -> reembolso si falla.

Uso típico desde el código de una feature:

    async with FeatureCharge(
        session, account_id,
        amount=5,
        options=DebitOptions(feature_type="rank_check", idempotency_key=key),
    ):
        await run_rank_check(...)

- Saldo insuficiente: InsufficientCreditsError sale de __aenter__ y el
  trabajo no se ejecuta.
- El cargo se confirma (commit) antes del trabajo, así sobrevive a un
  trabajo largo o a un reinicio del proceso.
- Si el trabajo falla se reembolsa con la misma clave; si el reembolso
  también falla se registra en ERROR ("credits lost") y se propaga el error
  original del trabajo, nunca el del reembolso.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from . import metrics
from .schemas import DebitOptions, LedgerResult, RefundOptions
from .services import CreditAccountingService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FeatureCharge:
    """Context manager asíncrono de cobro con reembolso automático."""

    def __init__(
        self,
        session: AsyncSession,
        account_id: UUID,
        *,
        amount: int,
        options: DebitOptions,
        service: Optional[CreditAccountingService] = None,
        commit: bool = True,
    ):
        self.session = session
        self.account_id = account_id
        self.amount = amount
        self.options = options
        self.service = service or CreditAccountingService()
        self.commit = commit
        self.debit_result: Optional[LedgerResult] = None
        self.refund_result: Optional[LedgerResult] = None

    async def __aenter__(self) -> "FeatureCharge":
        self.debit_result = await self.service.debit(
            self.session, self.account_id, self.amount, self.options
        )
        if self.commit:
            await self.session.commit()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            return False

        logger.warning(
            "Feature '%s' failed after debit (account=%s key=%s): %s; refunding",
            self.options.feature_type, self.account_id, self.options.idempotency_key, exc,
        )
        try:
            if self.commit:
                # El cargo ya está confirmado; se descarta lo que dejó el trabajo fallido
                await self.session.rollback()
            self.refund_result = await self.service.refund_feature(
                self.session,
                self.account_id,
                self.amount,
                self.options.idempotency_key,
                RefundOptions(
                    feature_type=self.options.feature_type,
                    feature_metadata={
                        **(self.options.feature_metadata or {}),
                        "error": type(exc).__name__,
                    },
                    description=f"Refund for failed {self.options.feature_type}",
                    created_by=self.options.created_by,
                ),
            )
            if self.commit:
                await self.session.commit()
        except Exception:
            metrics.credits_refund_failures_total.labels(self.options.feature_type).inc()
            logger.exception(
                "Refund failed, credits lost: account=%s amount=%d feature=%s key=%s",
                self.account_id, self.amount, self.options.feature_type, self.options.idempotency_key,
            )
            if self.commit:
                await self.session.rollback()
        # Se propaga siempre el error original del trabajo
        return False


async def run_charged(
    session: AsyncSession,
    account_id: UUID,
    amount: int,
    options: DebitOptions,
    work: Callable[[], Awaitable[T]],
    *,
    service: Optional[CreditAccountingService] = None,
    commit: bool = True,
) -> T:
    """Forma funcional de FeatureCharge: cobra, ejecuta work() y devuelve su resultado."""
    async with FeatureCharge(
        session, account_id, amount=amount, options=options, service=service, commit=commit
    ):
        return await work()


__all__ = ["FeatureCharge", "run_charged"]
