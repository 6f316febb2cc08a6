# -*- coding: utf-8 -*-
"""
credit_ledger/shared/config/__init__.py

Punto único de acceso a la configuración:
    from credit_ledger.shared.config import get_settings

La instancia se crea de forma perezosa (lru_cache en config_loader),
así los tests pueden fijar PYTHON_ENV antes del primer acceso.
"""

from .config_loader import get_settings
from .logging_config import setup_logging
from .settings_base import BaseAppSettings

__all__ = ["get_settings", "setup_logging", "BaseAppSettings"]
# Fin del archivo credit_ledger/shared/config/__init__.py
