#!/usr/bin/env python3
#
# cyberwg/utils/deps.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""FastAPI dependency helpers."""

from __future__ import annotations

from fastapi import Request

from ..db.roster import RosterStore
from ..utils.sessions import SessionStore
from .config import Config


def get_store(request: Request) -> RosterStore:
	"""The roster store from app state."""
	return request.app.state.store


def get_sessions(request: Request) -> SessionStore:
	"""The session store from app state."""
	return request.app.state.sessions


def get_config(request: Request) -> Config:
	"""Get the application configuration from app state."""
	return request.app.state.cfg
