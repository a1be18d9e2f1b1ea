#!/usr/bin/env python3
#
# cyberwg/utils/request_id.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Request ID middleware for tracing."""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

_log = logging.getLogger(__name__)

# Client-supplied IDs are echoed back in headers and logs
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
	"""Tag each request with an ID and log method, path, status and duration."""

	async def dispatch(self, request: Request, call_next: Callable) -> Response:
		supplied = request.headers.get("X-Request-ID", "")
		request_id = supplied if _REQUEST_ID_RE.fullmatch(supplied) else str(uuid.uuid4())
		request.state.request_id = request_id

		started = time.perf_counter()
		response = await call_next(request)
		elapsed_ms = (time.perf_counter() - started) * 1000

		response.headers["X-Request-ID"] = request_id
		if not request.url.path.startswith("/static/"):
			_log.debug(
				"REQUEST id=%s method=%s path=%s status=%d duration_ms=%.1f",
				request_id, request.method, request.url.path, response.status_code, elapsed_ms,
			)
		return response
