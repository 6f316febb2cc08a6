# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/metrics.py

Coleccionistas Prometheus del motor de créditos.

Define contadores para registrar:
- Créditos abonados / cargados / reembolsados / expirados
- Rechazos por saldo insuficiente
- Reintentos idempotentes y reintentos de compare-and-swap
- Reembolsos fallidos (créditos perdidos)
- Ejecuciones del ciclo mensual y resultado por cuenta
- Descuadres de conciliación

Autor: DoxAI
Fecha: 2026-10-18
"""
from prometheus_client import Counter

NAMESPACE = "credit_ledger"
SUBSYSTEM = "credits"

credits_credited_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_credited_total",
    "Créditos abonados",
    labelnames=("credit_type", "transaction_type"),
)

credits_debited_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_debited_total",
    "Créditos cargados por uso de features",
    labelnames=("feature_type",),
)

credits_refunded_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_refunded_total",
    "Créditos reembolsados",
    labelnames=("feature_type", "credit_type"),
)

credits_expired_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_expired_total",
    "Créditos included expirados al cierre del ciclo",
)

credits_insufficient_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_insufficient_total",
    "Cargos rechazados por saldo insuficiente",
    labelnames=("feature_type",),
)

credits_idempotent_replays_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_idempotent_replays_total",
    "Operaciones con clave de idempotencia ya registrada",
    labelnames=("operation",),  # credit|debit|refund|expire
)

credits_cas_retries_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_cas_retries_total",
    "Reintentos por compare-and-swap perdido",
    labelnames=("operation",),
)

credits_refund_failures_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_refund_failures_total",
    "Reembolsos fallidos tras un error de la feature (créditos perdidos)",
    labelnames=("feature_type",),
)

credits_monthly_cycle_runs_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_monthly_cycle_runs_total",
    "Ejecuciones del ciclo mensual por estado",
    labelnames=("status",),  # skipped|completed
)

credits_monthly_cycle_accounts_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_monthly_cycle_accounts_total",
    "Resultado del ciclo mensual por cuenta",
    labelnames=("outcome",),  # processed|skipped|errored|ineligible
)

credits_reconciliation_mismatches_total = Counter(
    f"{NAMESPACE}_{SUBSYSTEM}_reconciliation_mismatches_total",
    "Cuentas cuyo saldo no coincide con la suma del ledger",
)

__all__ = [
    "credits_credited_total",
    "credits_debited_total",
    "credits_refunded_total",
    "credits_expired_total",
    "credits_insufficient_total",
    "credits_idempotent_replays_total",
    "credits_cas_retries_total",
    "credits_refund_failures_total",
    "credits_monthly_cycle_runs_total",
    "credits_monthly_cycle_accounts_total",
    "credits_reconciliation_mismatches_total",
]

# Fin del archivo credit_ledger/modules/credits/metrics.py
