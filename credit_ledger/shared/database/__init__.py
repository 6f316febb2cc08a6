# -*- coding: utf-8 -*-
"""
credit_ledger/shared/database/__init__.py
"""

from .base import Base, NAMING_CONVENTION
from .database import SessionLocal, get_db, get_engine, session_scope, check_database_health, dispose_engine

__all__ = [
    "Base",
    "NAMING_CONVENTION",
    "SessionLocal",
    "get_db",
    "get_engine",
    "session_scope",
    "check_database_health",
    "dispose_engine",
]
