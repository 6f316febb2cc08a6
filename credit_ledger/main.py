# -*- coding: utf-8 -*-
"""
credit_ledger/main.py

Punto de entrada del servicio de créditos.

Ajustes clave:
- .env cargado antes de leer settings (override sólo fuera de producción)
- Logging centralizado (plain/json) vía setup_logging
- Observabilidad Prometheus (/metrics) vía shared.observability.prom
- Scheduler con el job del ciclo mensual (CREDITS_SCHEDULER_ENABLED)
- Errores de dominio mapeados a 402/409/422
- /health con verificación de base de datos

Autor: DoxAI
Fecha: 2026-10-18
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

# ---------------------------------------------------------------------------
# Cargar .env ANTES de cualquier import que lea la configuración
# ---------------------------------------------------------------------------
from dotenv import load_dotenv

_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
_override_env = os.getenv("PYTHON_ENV", "development").strip().lower() != "production"
load_dotenv(dotenv_path=_ENV_PATH, override=_override_env)

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from credit_ledger.shared.config import get_settings, setup_logging
from credit_ledger.shared.database.database import check_database_health, dispose_engine
from credit_ledger.shared.observability.prom import setup_observability
from credit_ledger.shared.scheduler import get_scheduler
from credit_ledger.modules.credits.errors import (
    CreditContentionError,
    InsufficientCreditsError,
    InvalidCreditAmountError,
)
from credit_ledger.modules.credits.routes import router as credits_router
from credit_ledger.modules.billing_cycle.jobs import register_monthly_cycle_job
from credit_ledger.modules.billing_cycle.routes import router as billing_cycle_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ────────── STARTUP ──────────
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    scheduler = None
    if settings.credits_scheduler_enabled:
        scheduler = get_scheduler()
        register_monthly_cycle_job(settings.credits_monthly_cycle_cron)
        scheduler.start()
        logger.info("Scheduler started with monthly credits cycle")
    else:
        logger.info("Scheduler disabled (CREDITS_SCHEDULER_ENABLED=false)")

    logger.info("%s started (env=%s)", settings.app_name, settings.python_env)
    try:
        yield
    finally:
        # ────────── SHUTDOWN ──────────
        if scheduler is not None:
            scheduler.shutdown(wait=True)
        await dispose_engine()
        logger.info("%s stopped", settings.app_name)


async def insufficient_credits_handler(request: Request, exc: InsufficientCreditsError):
    return JSONResponse(
        status_code=402,
        content={
            "error": "insufficient_credits",
            "required": exc.required,
            "available": exc.available,
        },
    )


async def invalid_amount_handler(request: Request, exc: InvalidCreditAmountError):
    return JSONResponse(
        status_code=422,
        content={"error": "invalid_credit_amount", "detail": str(exc)},
    )


async def contention_handler(request: Request, exc: CreditContentionError):
    return JSONResponse(
        status_code=409,
        content={"error": "credit_contention", "detail": str(exc)},
    )


def create_app() -> FastAPI:
    """Construye la app FastAPI con rutas, métricas y handlers de errores."""
    app = FastAPI(
        title="Credit Ledger API",
        description="Contabilidad de créditos: saldos, ledger y ciclo mensual",
        version="0.1.0",
        lifespan=lifespan,
    )

    setup_observability(app)

    app.add_exception_handler(InsufficientCreditsError, insufficient_credits_handler)
    app.add_exception_handler(InvalidCreditAmountError, invalid_amount_handler)
    app.add_exception_handler(CreditContentionError, contention_handler)

    app.include_router(credits_router)
    app.include_router(billing_cycle_router)

    @app.get("/health")
    async def health():
        db_ok = await check_database_health()
        return JSONResponse(
            status_code=200 if db_ok else 503,
            content={"status": "ok" if db_ok else "degraded", "database": db_ok},
        )

    return app


app = create_app()


if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(
        "credit_ledger.main:app",
        host=_settings.app_host,
        port=_settings.app_port,
    )

# Fin del archivo credit_ledger/main.py
