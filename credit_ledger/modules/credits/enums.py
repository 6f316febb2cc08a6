# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/enums.py

Enums del motor de créditos.

Se persisten como texto (no ENUM de PostgreSQL) y se restringen con
CHECK constraints en models.py.

Autor: DoxAI
Fecha: 2026-10-18
"""

from enum import Enum


class CreditType(str, Enum):
    """
    Bolsa de créditos afectada por un movimiento.
    """
    INCLUDED = "included"    # Créditos del plan, expiran al cierre del ciclo mensual
    PURCHASED = "purchased"  # Créditos comprados, no expiran


class TransactionType(str, Enum):
    """
    Tipo de movimiento registrado en el ledger.
    """
    MONTHLY_GRANT = "monthly_grant"          # Abono mensual del plan (+included)
    MONTHLY_EXPIRE = "monthly_expire"        # Expiración de included al cierre (-included)
    FEATURE_DEBIT = "feature_debit"          # Cargo por uso de una feature
    REFUND = "refund"                        # Reembolso de un cargo fallido
    PURCHASE = "purchase"                    # Compra de créditos (+purchased)
    MANUAL_ADJUSTMENT = "manual_adjustment"  # Ajuste administrativo


__all__ = [
    "CreditType",
    "TransactionType",
]
