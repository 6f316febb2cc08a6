# -*- coding: utf-8 -*-
"""
credit_ledger/shared/utils/__init__.py
"""

from .datetime_helpers import utcnow, ensure_utc, ensure_utc_optional

__all__ = ["utcnow", "ensure_utc", "ensure_utc_optional"]
