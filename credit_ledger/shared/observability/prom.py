# -*- coding: utf-8 -*-
"""
credit_ledger/shared/observability/prom.py

Métricas HTTP de la app y endpoint /metrics (pull model de Prometheus).

- Etiquetas method/route/status, donde route es la plantilla de FastAPI
  (/credits/{account_id}/balance) y no la URL concreta.
- Un error no manejado se cuenta como status 500 y se re-lanza.
- Con PROMETHEUS_MULTIPROC_DIR se agrega desde todos los workers.

Autor: DoxAI
Fecha: 2026-10-18
"""
from __future__ import annotations

import os
from time import perf_counter
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    multiprocess,
)

HTTP_REQUESTS = Counter(
    "credit_ledger_http_requests_total",
    "HTTP requests served",
    ["method", "route", "status"],
)
HTTP_LATENCY = Histogram(
    "credit_ledger_http_request_latency_seconds",
    "HTTP request latency (s)",
    ["method", "route"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
HTTP_IN_FLIGHT = Gauge(
    "credit_ledger_http_requests_in_flight",
    "HTTP requests currently being served",
    multiprocess_mode="livesum",
)

METRICS_PATH = "/metrics"


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Cuenta peticiones y mide latencia por plantilla de ruta."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == METRICS_PATH:
            return await call_next(request)

        status = "500"
        start = perf_counter()
        HTTP_IN_FLIGHT.inc()
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            HTTP_IN_FLIGHT.dec()
            route = _route_template(request)
            HTTP_LATENCY.labels(request.method, route).observe(perf_counter() - start)
            HTTP_REQUESTS.labels(request.method, route, status).inc()


def _multiprocess_registry() -> Optional[CollectorRegistry]:
    if not os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        return None
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    return registry


def mount_metrics(app: FastAPI, path: str = METRICS_PATH) -> None:
    """Expone el registro por defecto (o el multiproceso) en `path`."""
    registry = _multiprocess_registry()

    @app.get(path, include_in_schema=False)
    def metrics() -> Response:
        payload = generate_latest(registry) if registry is not None else generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


def setup_observability(app: FastAPI) -> None:
    app.add_middleware(PrometheusMiddleware)
    mount_metrics(app)


__all__ = ["PrometheusMiddleware", "mount_metrics", "setup_observability"]
# Fin del archivo credit_ledger/shared/observability/prom.py
