# -*- coding: utf-8 -*-
"""
credit_ledger/shared/database/base.py

Base declarativa, convención de nombres y tipos portables entre
PostgreSQL (producción) y SQLite (tests).

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Integer, MetaData
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# Nombres estables de constraints (ck_credit_ledger_amount_nonzero, etc.)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# BIGSERIAL en PostgreSQL; INTEGER en SQLite para que AUTOINCREMENT funcione
BIGINT_PK = BigInteger().with_variant(Integer, "sqlite")

# JSONB en PostgreSQL; JSON (texto) en el resto
JSON_DOCUMENT = JSON().with_variant(JSONB, "postgresql")


class Base(DeclarativeBase):
    """Base de los modelos ORM del motor de créditos."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


__all__ = ["Base", "NAMING_CONVENTION", "BIGINT_PK", "JSON_DOCUMENT"]

# Fin del archivo credit_ledger/shared/database/base.py
