# -*- coding: utf-8 -*-
"""
credit_ledger/__init__.py

Motor de contabilidad de créditos para SaaS multi-tenant: saldos por cuenta
(included + purchased), ledger append-only con idempotencia, cargos,
reembolsos y ciclo mensual de expiración/abono.
"""

__version__ = "0.1.0"
