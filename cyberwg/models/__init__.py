#!/usr/bin/env python3
#
# cyberwg/models/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Pydantic models for CyberWG."""

from .clients import (
	Bandwidth,
	ClientConfig,
	ClientCreate,
	ClientPublic,
	ClientRecord,
	ClientUpdate,
	ClientView,
	PeerStats,
)

__all__ = [
	"Bandwidth",
	"ClientConfig",
	"ClientCreate",
	"ClientPublic",
	"ClientRecord",
	"ClientUpdate",
	"ClientView",
	"PeerStats",
]
