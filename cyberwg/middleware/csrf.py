#!/usr/bin/env python3
#
# cyberwg/middleware/csrf.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""CSRF protection for the cookie-authenticated panel.

Double-submit cookie: every browser gets a random ``csrf_token`` cookie that
JavaScript can read. Unsafe requests to the API or the login form must echo it
back in the ``X-CSRF-Token`` header or a ``csrf_token`` form field. Requests
whose ``Origin`` names another site are refused outright.
"""

from __future__ import annotations

import logging
import posixpath
import secrets
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

_log = logging.getLogger(__name__)

__all__ = ["CSRFMiddleware", "CSRF_COOKIE", "CSRF_HEADER", "CSRF_FORM_FIELD"]

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
CSRF_FORM_FIELD = "csrf_token"
CSRF_COOKIE_MAX_AGE = 24 * 3600

_SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
_PROTECTED = ("/api", "/login")


def _is_protected(path: str) -> bool:
	path = posixpath.normpath(path).lower()
	return any(path == p or path.startswith(p + "/") for p in _PROTECTED)


def _same_origin(request: Request) -> bool:
	"""An absent Origin is fine; a present one must match scheme and host."""
	origin = request.headers.get("Origin")
	if not origin:
		return True
	try:
		parsed = urlparse(origin)
	except ValueError:
		return False
	scheme = (parsed.scheme or "").lower()
	host = (parsed.hostname or "").lower()
	return bool(scheme and host) and scheme == request.url.scheme and host == (request.url.hostname or "").lower()


async def _echoed_token(request: Request) -> Optional[str]:
	"""The token the client sent back, from header or form body."""
	header = request.headers.get(CSRF_HEADER)
	if header:
		return header

	content_type = request.headers.get("Content-Type", "")
	if content_type.startswith("application/x-www-form-urlencoded"):
		fields = parse_qs((await request.body()).decode("utf-8", errors="ignore"))
		values = fields.get(CSRF_FORM_FIELD)
		return values[0] if values else None
	if content_type.startswith("multipart/form-data"):
		value = (await request.form()).get(CSRF_FORM_FIELD)
		return value if isinstance(value, str) else None
	return None


def _forbidden(detail: str) -> JSONResponse:
	return JSONResponse(status_code=403, content={"detail": detail})


class CSRFMiddleware(BaseHTTPMiddleware):
	"""Issue the CSRF cookie and enforce it on unsafe protected requests."""

	async def dispatch(self, request: Request, call_next: Callable) -> Response:
		path = request.url.path
		safe = request.method in _SAFE_METHODS

		# A fresh token per login form, so a pre-login token never outlives the login.
		cookie_token = None if (safe and path == "/login") else request.cookies.get(CSRF_COOKIE)
		token = cookie_token or secrets.token_urlsafe(32)
		request.state.csrf_token = token

		if not safe and _is_protected(path):
			if not _same_origin(request):
				_log.warning("CSRF_ORIGIN_BLOCKED path=%s origin=%s", path, request.headers.get("Origin"))
				return _forbidden("Cross-origin request blocked")

			echoed = await _echoed_token(request)
			if cookie_token is None or not echoed or not secrets.compare_digest(cookie_token.encode(), echoed.encode()):
				_log.warning("CSRF_REJECTED method=%s path=%s", request.method, path)
				return _forbidden("CSRF token missing or invalid")

		response = await call_next(request)

		if cookie_token is None:
			response.set_cookie(
				key=CSRF_COOKIE,
				value=token,
				max_age=CSRF_COOKIE_MAX_AGE,
				path="/",
				secure=request.url.scheme == "https",
				httponly=False,  # read by the dashboard script
				samesite="strict",
			)
		return response
