# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/errors.py

Excepciones de dominio del motor de créditos.

Mapeo HTTP (ver credit_ledger/main.py):
- InsufficientCreditsError -> 402
- InvalidCreditAmountError -> 422
- CreditContentionError    -> 409
IdempotencyConflict nunca sale del motor: se traduce a "ya aplicado".

Autor: DoxAI
Fecha: 2026-10-18
"""


class CreditLedgerError(Exception):
    """Base de todos los errores del motor de créditos."""


class InsufficientCreditsError(CreditLedgerError):
    """Se lanza cuando el saldo total no cubre un cargo. No es reintentable."""
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Créditos insuficientes: requeridos={required}, disponibles={available}"
        )


class InvalidCreditAmountError(CreditLedgerError):
    """Se lanza cuando el monto de una operación no es un entero positivo."""
    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Monto de créditos inválido: {amount!r}")


class IdempotencyConflict(CreditLedgerError):
    """Otra transacción registró la misma clave de idempotencia primero."""
    def __init__(self, idempotency_key: str):
        self.idempotency_key = idempotency_key
        super().__init__(f"Clave de idempotencia ya registrada: {idempotency_key}")


class CreditContentionError(CreditLedgerError):
    """
    Se agotaron los reintentos de compare-and-swap sobre el saldo.
    Reintentable con la misma clave de idempotencia.
    """
    def __init__(self, account_id, attempts: int):
        self.account_id = account_id
        self.attempts = attempts
        super().__init__(
            f"Contención en saldo de {account_id}: {attempts} intentos sin éxito"
        )


__all__ = [
    "CreditLedgerError",
    "InsufficientCreditsError",
    "InvalidCreditAmountError",
    "IdempotencyConflict",
    "CreditContentionError",
]

# Fin del archivo credit_ledger/modules/credits/errors.py
