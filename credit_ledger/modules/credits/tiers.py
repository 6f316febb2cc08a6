# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/tiers.py

Tabla de créditos mensuales incluidos por plan (source of truth).

La tabla por defecto puede sustituirse completa con la variable
CREDITS_TIER_CREDITS_JSON, p. ej.:

    CREDITS_TIER_CREDITS_JSON='{"free": 0, "grower": 150, "builder": 300, "maven": 600}'

Si el JSON es inválido se registra un warning y se usa la tabla por defecto.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from credit_ledger.shared.config import get_settings

logger = logging.getLogger(__name__)


class TierCredits(BaseModel):
    """Créditos incluidos por mes para un plan."""
    plan: str
    monthly_credits: int


DEFAULT_TIER_CREDITS: Dict[str, int] = {
    "free": 0,
    "grower": 100,
    "builder": 200,
    "maven": 400,
}


def _normalize_table(raw: object) -> Dict[str, int]:
    """
    Valida la tabla leída del entorno.

    Raises:
        ValueError: si no es un objeto {plan: entero >= 0}
    """
    if not isinstance(raw, dict) or not raw:
        raise ValueError("must be a non-empty JSON object")

    table: Dict[str, int] = {}
    for plan, credits in raw.items():
        # bool es subclase de int; no se acepta como cantidad
        if not isinstance(credits, int) or isinstance(credits, bool) or credits < 0:
            raise ValueError(f"invalid credits for plan {plan!r}: {credits!r}")
        key = str(plan).strip().lower()
        if key in table:
            logger.warning("Duplicate plan '%s' in tier table; keeping first occurrence", key)
            continue
        table[key] = credits
    return table


def get_tier_table(tier_json: Optional[str] = None) -> Dict[str, int]:
    """
    Devuelve la tabla plan -> créditos mensuales.

    Args:
        tier_json: JSON explícito; por defecto se lee de settings
            (CREDITS_TIER_CREDITS_JSON).
    """
    if tier_json is None:
        tier_json = get_settings().credits_tier_credits_json

    if not tier_json:
        return dict(DEFAULT_TIER_CREDITS)

    try:
        return _normalize_table(json.loads(tier_json))
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(
            "Failed to load CREDITS_TIER_CREDITS_JSON (%s). Using default tier table.", e
        )
        return dict(DEFAULT_TIER_CREDITS)


def is_known_plan(plan: Optional[str], table: Optional[Dict[str, int]] = None) -> bool:
    """True si el plan existe en la tabla (sin distinguir mayúsculas)."""
    if not plan:
        return False
    table = table if table is not None else get_tier_table()
    return plan.strip().lower() in table


def get_tier_credits(plan: Optional[str], table: Optional[Dict[str, int]] = None) -> int:
    """
    Créditos mensuales incluidos para un plan.

    Búsqueda sin distinguir mayúsculas; un plan desconocido (o vacío) vale 0.
    """
    if not plan:
        return 0
    table = table if table is not None else get_tier_table()
    return table.get(plan.strip().lower(), 0)


def get_all_tier_credits(table: Optional[Dict[str, int]] = None) -> List[TierCredits]:
    """Todos los planes, ordenados por créditos mensuales (y nombre)."""
    table = table if table is not None else get_tier_table()
    return [
        TierCredits(plan=plan, monthly_credits=credits)
        for plan, credits in sorted(table.items(), key=lambda kv: (kv[1], kv[0]))
    ]


__all__ = [
    "TierCredits",
    "DEFAULT_TIER_CREDITS",
    "get_tier_table",
    "get_tier_credits",
    "get_all_tier_credits",
    "is_known_plan",
]
