# -*- coding: utf-8 -*-
"""
credit_ledger/shared/config/config_loader.py

Selecciona la clase de settings según PYTHON_ENV, corre las validaciones
de seguridad y cachea la instancia (singleton por proceso).

Los tests limpian el caché con get_settings.cache_clear().

Autor: DoxAI
Fecha: 2026-10-18
"""

import logging
import os
from functools import lru_cache
from typing import Dict, Type

from .settings_base import BaseAppSettings
from .settings_dev import DevSettings
from .settings_prod import ProdSettings
from .settings_testing import EnvTestingSettings

logger = logging.getLogger(__name__)

_SETTINGS_BY_ENV: Dict[str, Type[BaseAppSettings]] = {
    "production": ProdSettings,
    "test": EnvTestingSettings,
    "development": DevSettings,
}


@lru_cache(maxsize=1)
def get_settings() -> BaseAppSettings:
    """
    Settings del entorno actual (development por defecto).

    Raises:
        ValueError: si las validaciones de seguridad fallan
            (p. ej. producción sin APP_SERVICE_TOKEN)
    """
    env = os.getenv("PYTHON_ENV", "development").strip().lower()
    settings_cls = _SETTINGS_BY_ENV.get(env, DevSettings)

    settings = settings_cls()
    settings._security_checks()
    logger.debug("Settings loaded: %s (PYTHON_ENV=%s)", settings_cls.__name__, env)
    return settings


__all__ = ["get_settings"]
# Fin del archivo credit_ledger/shared/config/config_loader.py
