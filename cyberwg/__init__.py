#!/usr/bin/env python3
#
# cyberwg/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""CyberWG – WireGuard peer administration panel."""

from .main import create_app

__all__ = ["create_app"]
