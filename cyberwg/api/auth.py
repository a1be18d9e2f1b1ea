#!/usr/bin/env python3
#
# cyberwg/api/auth.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Session cookie authentication helpers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, Response

from ..utils.deps import get_sessions
from ..utils.time import utcnow

_log = logging.getLogger(__name__)

__all__ = [
	"AUTH_COOKIE",
	"client_ip",
	"is_authenticated",
	"require_session",
	"open_session",
	"close_session",
]

AUTH_COOKIE = "auth_token"


def client_ip(request: Request) -> str:
	return request.client.host if request.client else "unknown"


def is_authenticated(request: Request) -> bool:
	"""True if the request carries a live session cookie."""
	return get_sessions(request).validate(request.cookies.get(AUTH_COOKIE))


def require_session(request: Request) -> None:
	"""Dependency for API routes: 401 without a valid session."""
	if not is_authenticated(request):
		raise HTTPException(status_code=401, detail="Not authenticated")


def open_session(request: Request, response: Response) -> None:
	"""Start a session and attach its cookie to ``response``."""
	token, expires_at = get_sessions(request).create()
	max_age = max(0, int((expires_at - utcnow()).total_seconds()))
	response.set_cookie(
		key=AUTH_COOKIE,
		value=token,
		httponly=True,
		secure=(request.url.scheme == "https"),
		samesite="strict",
		max_age=max_age,
		path="/",
	)


def close_session(request: Request, response: Response) -> None:
	get_sessions(request).revoke(request.cookies.get(AUTH_COOKIE))
	response.delete_cookie(key=AUTH_COOKIE, path="/")
