# -*- coding: utf-8 -*-
"""
credit_ledger/modules/billing_cycle/calendar_utils.py

Fechas del ciclo mensual (todas en UTC).

El ciclo corre el último día de cada mes y abona los créditos del mes
siguiente; esos créditos expiran en el primer instante del mes posterior.

Ejemplo: corrida el 2026-10-31 -> month_key "2026-11", expiración
2026-12-01T00:00:00Z.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import calendar
from datetime import datetime, timezone

from credit_ledger.shared.utils.datetime_helpers import ensure_utc


def _add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def is_last_day_of_month(now: datetime) -> bool:
    """True si `now` (en UTC) cae en el último día calendario de su mes."""
    now = ensure_utc(now)
    return now.day == calendar.monthrange(now.year, now.month)[1]


def next_month_key(now: datetime) -> str:
    """Clave YYYY-MM del mes siguiente a `now` (UTC)."""
    now = ensure_utc(now)
    year, month = _add_months(now.year, now.month, 1)
    return f"{year:04d}-{month:02d}"


def granted_month_expiry(now: datetime) -> datetime:
    """Primer instante (UTC) posterior al mes que se abona en la corrida `now`."""
    now = ensure_utc(now)
    year, month = _add_months(now.year, now.month, 2)
    return datetime(year, month, 1, tzinfo=timezone.utc)


__all__ = ["is_last_day_of_month", "next_month_key", "granted_month_expiry"]
