# -*- coding: utf-8 -*-
"""
credit_ledger/shared/utils/datetime_helpers.py

Utilidades para manejo consistente de timestamps UTC.

SQLite (tests) devuelve datetimes naive; PostgreSQL (timestamptz) los
devuelve con zona. Toda comparación de fechas del motor pasa por ensure_utc.

Autor: DoxAI
Fecha: 2026-10-18
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Retorna el timestamp UTC actual (timezone-aware).

    Examples:
        >>> utcnow().tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Asegura que un datetime sea UTC timezone-aware.
    Los valores naive se interpretan como UTC.

    Examples:
        >>> ensure_utc(datetime(2026, 10, 31, 12, 0)).tzinfo == timezone.utc
        True
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    elif dt.tzinfo != timezone.utc:
        return dt.astimezone(timezone.utc)
    return dt


def ensure_utc_optional(dt: Optional[datetime]) -> Optional[datetime]:
    """Igual que ensure_utc pero tolera None."""
    if dt is None:
        return None
    return ensure_utc(dt)


__all__ = ["utcnow", "ensure_utc", "ensure_utc_optional"]
# Fin del archivo credit_ledger/shared/utils/datetime_helpers.py
