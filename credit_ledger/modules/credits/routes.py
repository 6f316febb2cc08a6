# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/routes.py

Rutas de lectura del motor de créditos.

Endpoints:
- GET /credits/tiers
- GET /credits/{account_id}/balance
- GET /credits/{account_id}/ledger

La autorización del usuario final es responsabilidad de la aplicación host.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.shared.database.database import get_db
from .enums import TransactionType
from .schemas import BalanceSnapshot, LedgerPage
from .services import CreditAccountingService
from .tiers import TierCredits

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/credits",
    tags=["credits"],
)


def get_credit_service() -> CreditAccountingService:
    return CreditAccountingService()


@router.get(
    "/tiers",
    response_model=List[TierCredits],
    summary="Créditos mensuales por plan",
)
async def list_tier_credits(
    service: CreditAccountingService = Depends(get_credit_service),
) -> List[TierCredits]:
    return service.get_all_tier_credits()


@router.get(
    "/{account_id}/balance",
    response_model=BalanceSnapshot,
    summary="Saldo de créditos de una cuenta",
)
async def get_balance(
    account_id: UUID,
    db: AsyncSession = Depends(get_db),
    service: CreditAccountingService = Depends(get_credit_service),
) -> BalanceSnapshot:
    return await service.get_balance(db, account_id)


@router.get(
    "/{account_id}/ledger",
    response_model=LedgerPage,
    summary="Historial de movimientos de una cuenta",
    description="Más recientes primero. limit se acota a CREDITS_LEDGER_PAGE_MAX.",
)
async def get_ledger(
    account_id: UUID,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    feature_type: Optional[str] = Query(None, max_length=64),
    transaction_type: Optional[TransactionType] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: CreditAccountingService = Depends(get_credit_service),
) -> LedgerPage:
    return await service.get_ledger(
        db,
        account_id,
        limit=limit,
        offset=offset,
        feature_type=feature_type,
        transaction_type=transaction_type,
    )


__all__ = ["router", "get_credit_service"]
