# -*- coding: utf-8 -*-
"""
credit_ledger/modules/billing_cycle/schemas.py

Esquemas Pydantic del reporte del ciclo mensual.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

AccountCycleStatus = Literal["processed", "skipped", "errored", "ineligible"]


class AccountCycleResult(BaseModel):
    """Resultado del ciclo para una cuenta."""

    account_id: UUID
    plan: Optional[str] = None
    status: AccountCycleStatus
    expired: int = Field(default=0, description="Créditos included expirados.")
    granted: int = Field(default=0, description="Créditos included abonados.")
    reason: Optional[str] = None
    error: Optional[str] = None


class CycleReport(BaseModel):
    """Resumen de una corrida del ciclo mensual."""

    status: Literal["skipped", "completed"]
    reason: Optional[str] = None
    run_at: datetime
    forced: bool = False
    month_key: Optional[str] = None
    processed: int = 0
    skipped: int = 0
    errored: int = 0
    ineligible: int = 0
    results: List[AccountCycleResult] = Field(default_factory=list)


__all__ = ["AccountCycleResult", "CycleReport", "AccountCycleStatus"]
