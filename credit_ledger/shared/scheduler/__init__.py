# -*- coding: utf-8 -*-
"""
credit_ledger/shared/scheduler/__init__.py
"""

from .scheduler_service import SchedulerService, get_scheduler, parse_cron_expression

__all__ = ["SchedulerService", "get_scheduler", "parse_cron_expression"]
