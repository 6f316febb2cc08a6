# -*- coding: utf-8 -*-
"""
credit_ledger/shared/observability/__init__.py
"""

from .prom import setup_observability, mount_metrics

__all__ = ["setup_observability", "mount_metrics"]
