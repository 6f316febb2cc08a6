# -*- coding: utf-8 -*-
"""
credit_ledger/shared/config/logging_config.py

Logging centralizado del servicio: texto plano en desarrollo/tests y
JSON (python-json-logger) en producción.

Autor: DoxAI
Fecha: 2026-10-18
"""

import logging.config
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["plain", "pretty", "json"]


def _formatters() -> dict:
    return {
        "default": {
            "format": "%(asctime)s %(levelname)s [%(name)s]: %(message)s",
        },
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            "rename_fields": {"levelname": "level", "name": "logger"},
        },
    }


# Librerías ruidosas: sólo advertencias salvo que se pida DEBUG
_QUIET_LOGGERS = ("sqlalchemy.engine", "apscheduler", "aiosqlite")


def setup_logging(level: LogLevel = "INFO", fmt: LogFormat = "plain") -> None:
    """
    Configura el logger raíz con un único handler a stdout.

    Args:
        level: nivel del logger raíz
        fmt: plain/pretty (texto) o json

    Ejemplos:
        >>> setup_logging("INFO", "plain")
        >>> setup_logging("WARNING", "json")
    """
    level = level.upper()
    third_party_level = "DEBUG" if level == "DEBUG" else "WARNING"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": _formatters(),
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if fmt == "json" else "default",
                    "stream": "ext://sys.stdout",
                }
            },
            "loggers": {name: {"level": third_party_level} for name in _QUIET_LOGGERS},
            "root": {"handlers": ["console"], "level": level},
        }
    )


__all__ = ["setup_logging"]
# Fin del archivo credit_ledger/shared/config/logging_config.py
