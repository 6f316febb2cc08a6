# -*- coding: utf-8 -*-
"""
credit_ledger/modules/billing_cycle/service.py

Controlador del ciclo mensual de créditos included.

Corre a diario (ver jobs.py) pero sólo actúa el último día del mes (UTC):
para cada cuenta elegible expira los included vigentes y abona los del
plan para el mes siguiente.

Claves de idempotencia por cuenta y mes:
- monthly_expire:<account_id>:<YYYY-MM>
- monthly_grant:<account_id>:<YYYY-MM>

Cada cuenta se procesa en su propia transacción (commit por cuenta); un
error en una cuenta se registra y no detiene el lote. Volver a correr el
mismo mes no cambia nada: las cuentas con abono registrado se saltan.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.modules.credits import metrics
from credit_ledger.modules.credits.enums import CreditType, TransactionType
from credit_ledger.modules.credits.schemas import CreditOptions
from credit_ledger.modules.credits.services import CreditAccountingService
from credit_ledger.modules.credits.tiers import get_tier_table
from credit_ledger.shared.utils.datetime_helpers import ensure_utc, utcnow
from .accounts import AccountRecord, AccountRegistry
from .calendar_utils import granted_month_expiry, is_last_day_of_month, next_month_key
from .schemas import AccountCycleResult, CycleReport

logger = logging.getLogger(__name__)

CYCLE_ACTOR = "monthly_cycle"


def monthly_grant_key(account_id, month_key: str) -> str:
    return f"monthly_grant:{account_id}:{month_key}"


def monthly_expire_key(account_id, month_key: str) -> str:
    return f"monthly_expire:{account_id}:{month_key}"


class MonthlyCycleController:
    """
    Ejecuta el ciclo mensual sobre las cuentas del registro.

    La sesión recibida se confirma/deshace por cuenta: el llamador no debe
    tener trabajo pendiente en ella.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: AccountRegistry,
        service: Optional[CreditAccountingService] = None,
        tier_table: Optional[Dict[str, int]] = None,
    ):
        self.session = session
        self.registry = registry
        self.service = service or CreditAccountingService()
        self.tier_table = tier_table

    async def run(self, now: Optional[datetime] = None, force: bool = False) -> CycleReport:
        """
        Corre el ciclo.

        Args:
            now: instante de referencia (UTC); por defecto el actual
            force: omite sólo la verificación de último día del mes
                (disparo manual de un administrador)
        """
        now = ensure_utc(now) if now is not None else utcnow()

        if not force and not is_last_day_of_month(now):
            metrics.credits_monthly_cycle_runs_total.labels("skipped").inc()
            logger.info("Monthly cycle skipped: %s is not the last day of the month", now.date())
            return CycleReport(status="skipped", reason="not_last_day_of_month", run_at=now)

        month_key = next_month_key(now)
        expire_at = granted_month_expiry(now)
        table = self.tier_table if self.tier_table is not None else get_tier_table()

        accounts = await self.registry.list_accounts(self.session)
        logger.info(
            "Monthly cycle started: month=%s accounts=%d forced=%s", month_key, len(accounts), force
        )

        report = CycleReport(status="completed", run_at=now, forced=force, month_key=month_key)
        for account in accounts:
            result = await self._run_account(account, table, month_key, now, expire_at)
            report.results.append(result)
            metrics.credits_monthly_cycle_accounts_total.labels(result.status).inc()
            if result.status == "processed":
                report.processed += 1
            elif result.status == "skipped":
                report.skipped += 1
            elif result.status == "errored":
                report.errored += 1
            else:
                report.ineligible += 1

        metrics.credits_monthly_cycle_runs_total.labels("completed").inc()
        log = logger.error if report.errored else logger.info
        log(
            "Monthly cycle finished: month=%s processed=%d skipped=%d errored=%d ineligible=%d",
            month_key, report.processed, report.skipped, report.errored, report.ineligible,
        )
        return report

    def _ineligibility_reason(self, account: AccountRecord, table: Dict[str, int]) -> Optional[str]:
        if not account.is_active:
            return "inactive"
        if account.deleted_at is not None:
            return "deleted"
        plan = (account.plan or "").strip().lower()
        if plan == "free":
            return "free_plan"
        if plan not in table:
            return "unknown_plan"
        if table[plan] <= 0:
            return "no_monthly_credits"
        return None

    async def _run_account(
        self,
        account: AccountRecord,
        table: Dict[str, int],
        month_key: str,
        now: datetime,
        expire_at: datetime,
    ) -> AccountCycleResult:
        reason = self._ineligibility_reason(account, table)
        if reason is not None:
            log = logger.warning if reason == "unknown_plan" else logger.debug
            log("Monthly cycle: account %s ineligible (%s, plan=%s)", account.account_id, reason, account.plan)
            return AccountCycleResult(
                account_id=account.account_id, plan=account.plan, status="ineligible", reason=reason
            )

        try:
            result = await self._process_account(
                account, table[account.plan.strip().lower()], month_key, now, expire_at
            )
            await self.session.commit()
        except Exception as exc:
            await self.session.rollback()
            logger.exception(
                "Monthly cycle failed for account %s (month=%s)", account.account_id, month_key
            )
            return AccountCycleResult(
                account_id=account.account_id, plan=account.plan, status="errored", error=str(exc)
            )
        return result

    async def _process_account(
        self,
        account: AccountRecord,
        monthly_credits: int,
        month_key: str,
        now: datetime,
        expire_at: datetime,
    ) -> AccountCycleResult:
        account_id = account.account_id
        grant_key = monthly_grant_key(account_id, month_key)

        if await self.service.ledger_repo.exists(self.session, grant_key):
            logger.debug("Monthly cycle: account %s already granted for %s", account_id, month_key)
            return AccountCycleResult(
                account_id=account_id, plan=account.plan, status="skipped", reason="already_processed"
            )

        await self.service.ensure_balance_exists(self.session, account_id)

        expired = await self.service.expire_included(
            self.session,
            account_id,
            monthly_expire_key(account_id, month_key),
            description=f"Included credits expired before {month_key}",
            metadata={"month_key": month_key, "plan": account.plan},
            created_by=CYCLE_ACTOR,
        )

        granted = await self.service.credit(
            self.session,
            account_id,
            monthly_credits,
            CreditOptions(
                credit_type=CreditType.INCLUDED,
                transaction_type=TransactionType.MONTHLY_GRANT,
                idempotency_key=grant_key,
                description=f"Monthly {account.plan} credits for {month_key}",
                metadata={"month_key": month_key, "plan": account.plan},
                created_by=CYCLE_ACTOR,
            ),
        )
        if not granted.applied:
            # Otra corrida concurrente registró el abono primero
            return AccountCycleResult(
                account_id=account_id, plan=account.plan, status="skipped", reason="already_processed"
            )

        await self.service.balance_repo.mark_monthly_grant(
            self.session, account_id, granted_at=now, expire_at=expire_at
        )

        expired_amount = -expired.amount if expired.applied else 0
        logger.info(
            "Monthly cycle: account %s plan=%s expired=%d granted=%d month=%s",
            account_id, account.plan, expired_amount, monthly_credits, month_key,
        )
        return AccountCycleResult(
            account_id=account_id,
            plan=account.plan,
            status="processed",
            expired=expired_amount,
            granted=monthly_credits,
        )


__all__ = [
    "MonthlyCycleController",
    "monthly_grant_key",
    "monthly_expire_key",
]
