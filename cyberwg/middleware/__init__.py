#!/usr/bin/env python3
#
# cyberwg/middleware/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Middleware modules for CyberWG."""

from .csrf import CSRFMiddleware

__all__ = ["CSRFMiddleware"]
