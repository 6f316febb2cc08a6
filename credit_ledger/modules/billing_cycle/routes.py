# -*- coding: utf-8 -*-
"""
credit_ledger/modules/billing_cycle/routes.py

Disparo interno del ciclo mensual (scheduler externo / administrador).

Endpoint:
- POST /internal/credits/monthly-cycle?force=false
  Requiere Authorization: Bearer <APP_SERVICE_TOKEN>

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.shared.database.database import get_db
from credit_ledger.shared.internal_auth import InternalServiceAuth
from .accounts import AccountRegistry, SqlAccountRegistry
from .schemas import CycleReport
from .service import MonthlyCycleController

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal/credits",
    tags=["internal"],
)


def get_account_registry() -> AccountRegistry:
    return SqlAccountRegistry.from_settings()


@router.post(
    "/monthly-cycle",
    response_model=CycleReport,
    summary="Ejecutar ciclo mensual de créditos",
    description="force=true omite la verificación de último día del mes.",
)
async def trigger_monthly_cycle(
    _auth: InternalServiceAuth,
    force: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    registry: AccountRegistry = Depends(get_account_registry),
) -> CycleReport:
    logger.info("Monthly cycle triggered via internal endpoint (force=%s)", force)
    return await MonthlyCycleController(db, registry).run(force=force)


__all__ = ["router", "get_account_registry"]
