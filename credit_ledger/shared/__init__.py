# -*- coding: utf-8 -*-
"""
credit_ledger/shared/__init__.py

Infraestructura compartida: configuración, base de datos, scheduler,
autenticación interna y observabilidad.
"""
