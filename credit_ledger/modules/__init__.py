# -*- coding: utf-8 -*-
"""
credit_ledger/modules/__init__.py
"""
