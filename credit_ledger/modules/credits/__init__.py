# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/__init__.py

Motor de contabilidad de créditos.

Contiene:
- Modelos ORM: CreditBalance, CreditLedgerEntry
- Repositorios: BalanceRepository, LedgerRepository
- Servicio: CreditAccountingService
- Envoltura de cobro: FeatureCharge
- Enums: CreditType, TransactionType

Autor: DoxAI
Fecha: 2026-10-18
"""

from .models import (
    CreditBalance,
    CreditLedgerEntry,
)
from .enums import (
    CreditType,
    TransactionType,
)
from .errors import (
    CreditLedgerError,
    InsufficientCreditsError,
    InvalidCreditAmountError,
    CreditContentionError,
)
from .repositories import (
    BalanceRepository,
    LedgerRepository,
)
from .schemas import (
    CreditOptions,
    DebitOptions,
    RefundOptions,
    BalanceSnapshot,
    LedgerEntryRead,
    LedgerResult,
    LedgerPage,
    CreditCheck,
    ReconciliationReport,
)
from .services import CreditAccountingService
from .feature_charge import FeatureCharge, run_charged
from .tiers import TierCredits, get_tier_credits, get_all_tier_credits

__all__ = [
    # Models
    "CreditBalance",
    "CreditLedgerEntry",
    # Enums
    "CreditType",
    "TransactionType",
    # Errors
    "CreditLedgerError",
    "InsufficientCreditsError",
    "InvalidCreditAmountError",
    "CreditContentionError",
    # Repositories
    "BalanceRepository",
    "LedgerRepository",
    # Schemas
    "CreditOptions",
    "DebitOptions",
    "RefundOptions",
    "BalanceSnapshot",
    "LedgerEntryRead",
    "LedgerResult",
    "LedgerPage",
    "CreditCheck",
    "ReconciliationReport",
    # Services
    "CreditAccountingService",
    "FeatureCharge",
    "run_charged",
    # Tiers
    "TierCredits",
    "get_tier_credits",
    "get_all_tier_credits",
]
