# -*- coding: utf-8 -*-
"""
credit_ledger/modules/billing_cycle/jobs.py

Job programado del ciclo mensual de créditos.

Se registra como cron diario (CREDITS_MONTHLY_CYCLE_CRON, UTC); el
controlador decide si es el último día del mes.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.shared.config import get_settings
from credit_ledger.shared.database.database import session_scope
from credit_ledger.shared.scheduler import get_scheduler
from .accounts import AccountRegistry, SqlAccountRegistry
from .schemas import CycleReport
from .service import MonthlyCycleController

logger = logging.getLogger(__name__)

# ID del job para referencia
MONTHLY_CYCLE_JOB_ID = "credits_monthly_cycle"


async def run_monthly_cycle_job(
    force: bool = False,
    now: Optional[datetime] = None,
    registry: Optional[AccountRegistry] = None,
    session: Optional[AsyncSession] = None,
) -> CycleReport:
    """
    Ejecuta el ciclo mensual.

    Args:
        force: omite la verificación de último día del mes
        now: instante de referencia (tests)
        registry: registro de cuentas (default: SqlAccountRegistry desde settings)
        session: sesión async opcional (si no se provee, crea una nueva)
    """
    registry = registry or SqlAccountRegistry.from_settings()

    if session is not None:
        return await MonthlyCycleController(session, registry).run(now=now, force=force)

    # Crear sesión propia para el job
    async with session_scope() as sess:
        return await MonthlyCycleController(sess, registry).run(now=now, force=force)


def register_monthly_cycle_job(cron_expression: Optional[str] = None) -> str:
    """
    Registra el job del ciclo mensual en el scheduler global.

    Args:
        cron_expression: expresión cron de 5 campos (UTC); por defecto
            CREDITS_MONTHLY_CYCLE_CRON

    Returns:
        ID del job registrado
    """
    cron_expression = cron_expression or get_settings().credits_monthly_cycle_cron
    scheduler = get_scheduler()

    job_id = scheduler.add_cron_job(
        func=run_monthly_cycle_job,
        job_id=MONTHLY_CYCLE_JOB_ID,
        cron_expression=cron_expression,
    )

    logger.info("Registered monthly cycle job: id=%s cron='%s' (UTC)", job_id, cron_expression)
    return job_id


__all__ = [
    "run_monthly_cycle_job",
    "register_monthly_cycle_job",
    "MONTHLY_CYCLE_JOB_ID",
]
