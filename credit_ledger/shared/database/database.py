# -*- coding: utf-8 -*-
"""
credit_ledger/shared/database/database.py

SQLAlchemy 2.0 async (asyncpg en producción, aiosqlite en pruebas).

Provee:
- get_engine() (create_async_engine perezoso, según settings.database_url)
- SessionLocal (async_sessionmaker)
- Dependencia FastAPI: get_db
- context manager: session_scope()
- check_database_health()

Notas:
- El engine se construye en el primer uso, no al importar, para que los
  tests puedan fijar PYTHON_ENV / DB_URL antes.
- Las sesiones no hacen commit implícito: quien usa la sesión decide.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from credit_ledger.shared.config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Devuelve el engine global, creándolo en el primer uso."""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.database_url
        kwargs: dict = {"echo": settings.db_echo_sql}
        if url.startswith("postgresql"):
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
            )
        _engine = create_async_engine(url, **kwargs)
        logger.info("[DB] engine created (dialect=%s, echo=%s)", _engine.dialect.name, settings.db_echo_sql)
    return _engine


def SessionLocal() -> AsyncSession:
    """Abre una AsyncSession ligada al engine global."""
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            class_=AsyncSession,
            autoflush=False,
        )
    return _sessionmaker()


async def dispose_engine() -> None:
    """Cierra el pool de conexiones (shutdown de la app)."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
        logger.info("[DB] engine disposed")
    _engine = None
    _sessionmaker = None


# ── Dependencia FastAPI
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError:
            # Importante: rollback para liberar cualquier transacción/lock
            await session.rollback()
            raise
        finally:
            if session.in_transaction():
                await session.rollback()


# ── Context manager reutilizable en jobs/scripts
@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        try:
            yield session
            # El commit/rollback queda a cargo de quien usa el scope
        finally:
            if session.in_transaction():
                await session.rollback()


# ── Health check
async def check_database_health(timeout_s: float = 3.0, sql: str = "SELECT 1") -> bool:
    """
    Verifica conectividad a la base de datos.

    Returns:
        True si la conexión es exitosa, False en caso contrario
    """
    try:
        async with asyncio.timeout(timeout_s):
            async with get_engine().connect() as conn:
                await conn.execute(text(sql))
        return True
    except (SQLAlchemyError, OSError, TimeoutError) as e:
        logger.warning("[DB] health check failed: %s", e)
        return False


__all__ = [
    "get_engine",
    "SessionLocal",
    "dispose_engine",
    "get_db",
    "session_scope",
    "check_database_health",
]
# Fin del archivo credit_ledger/shared/database/database.py
