#!/usr/bin/env python3
#
# cyberwg/api/response.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Common API response helpers."""

from __future__ import annotations

from typing import Any


def ok_response(*, data: Any = None, message: str | None = None) -> dict[str, Any]:
	"""Wrap a payload as ``{"status": "ok", "data": ...}``.

	The dashboard script only checks ``status``; error responses keep
	FastAPI's ``{"detail": ...}`` shape.
	"""
	payload: dict[str, Any] = {"status": "ok"}
	if data is not None:
		payload["data"] = data
	if message is not None:
		payload["message"] = message
	return payload
