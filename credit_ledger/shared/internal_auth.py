# -*- coding: utf-8 -*-
"""
credit_ledger/shared/internal_auth.py

Token de servicio para endpoints internos (disparo del ciclo mensual
por un scheduler externo o un administrador).

    Authorization: Bearer <APP_SERVICE_TOKEN>

- token no configurado en el servicio -> 500
- header ausente o sin esquema Bearer -> 401
- token distinto -> 403

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
import secrets
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from credit_ledger.shared.config import get_settings

logger = logging.getLogger(__name__)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _configured_token() -> str:
    token = get_settings().internal_service_token
    return token.get_secret_value() if token is not None else ""


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        logger.warning("internal_auth_missing_header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers=_BEARER_CHALLENGE,
        )
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        logger.warning("internal_auth_invalid_format")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Expected 'Authorization: Bearer <token>'",
            headers=_BEARER_CHALLENGE,
        )
    return token


async def require_internal_service_token(
    authorization: Annotated[Optional[str], Header()] = None,
) -> bool:
    """Dependencia FastAPI: valida el token de servicio del request."""
    expected = _configured_token()
    if not expected:
        logger.error("internal_auth_not_configured: APP_SERVICE_TOKEN is empty")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal service token not configured",
        )

    provided = _bearer_token(authorization)
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        logger.warning("internal_auth_invalid_token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid service token")

    return True


InternalServiceAuth = Annotated[bool, Depends(require_internal_service_token)]


__all__ = [
    "require_internal_service_token",
    "InternalServiceAuth",
]
# Fin del archivo credit_ledger/shared/internal_auth.py
