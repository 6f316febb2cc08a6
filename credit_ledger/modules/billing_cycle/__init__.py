# -*- coding: utf-8 -*-
"""
credit_ledger/modules/billing_cycle/__init__.py

Ciclo mensual de créditos included (expiración + abono por plan).

Autor: DoxAI
Fecha: 2026-10-18
"""

from .accounts import AccountRecord, AccountRegistry, StaticAccountRegistry, SqlAccountRegistry
from .schemas import AccountCycleResult, CycleReport
from .service import MonthlyCycleController, monthly_grant_key, monthly_expire_key
from .jobs import run_monthly_cycle_job, register_monthly_cycle_job, MONTHLY_CYCLE_JOB_ID

__all__ = [
    "AccountRecord",
    "AccountRegistry",
    "StaticAccountRegistry",
    "SqlAccountRegistry",
    "AccountCycleResult",
    "CycleReport",
    "MonthlyCycleController",
    "monthly_grant_key",
    "monthly_expire_key",
    "run_monthly_cycle_job",
    "register_monthly_cycle_job",
    "MONTHLY_CYCLE_JOB_ID",
]
