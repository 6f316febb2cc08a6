# -*- coding: utf-8 -*-
"""
tests/conftest.py

Config global de tests del motor de créditos.

Ajustes clave:
- PYTHON_ENV=test antes de importar la app (EnvTestingSettings).
- Motor ASYNC sqlite+aiosqlite en memoria (StaticPool: una sola BD por test).
- Receta SAVEPOINT para pysqlite/aiosqlite: BEGIN explícito y
  isolation_level=None, así begin_nested() funciona como en PostgreSQL.
- Fixture principal: db_session (AsyncSession, expire_on_commit=False).
- Cliente httpx (ASGITransport) con ciclo de vida vía asgi-lifespan.
"""

import os

# Debe fijarse antes de importar credit_ledger.*
os.environ["PYTHON_ENV"] = "test"

import uuid
from collections.abc import AsyncIterator

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

from credit_ledger.shared.config import get_settings
from credit_ledger.shared.database.base import Base
from credit_ledger.shared.database.database import get_db
from credit_ledger.modules.credits import models  # noqa: F401  registra tablas
from credit_ledger.modules.credits.services import CreditAccountingService


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Aísla settings por test (get_settings está cacheado)."""
    monkeypatch.setenv("PYTHON_ENV", "test")
    monkeypatch.delenv("CREDITS_TIER_CREDITS_JSON", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )

    @event.listens_for(eng.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        # Desactiva el BEGIN implícito del driver para que SAVEPOINT funcione
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def service() -> CreditAccountingService:
    return CreditAccountingService()


@pytest.fixture
def account_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def app(db_session):
    """App FastAPI con get_db apuntando a la sesión del test."""
    from credit_ledger.main import create_app

    fastapi_app = create_app()

    async def _override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    return fastapi_app


@pytest.fixture
async def async_client(app) -> AsyncIterator[AsyncClient]:
    """
    Cliente HTTP asíncrono contra la app con ASGITransport y gestión
    de startup/shutdown mediante asgi-lifespan.
    """
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
