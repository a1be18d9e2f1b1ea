#!/usr/bin/env python3
#
# cyberwg/utils/crypto.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Cryptographic helpers for password checks and token generation."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone


def verify_secret(supplied: str, expected: str) -> bool:
	"""Compare a supplied secret with the expected one in constant time."""
	if not supplied or not expected:
		return False
	return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def new_token() -> str:
	"""Generate a new secure random token (32 bytes, URL-safe base64)."""
	return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
	"""Hash a token for storage using SHA-256.

	Only hashes are kept server-side, so a memory dump doesn't directly expose
	valid session tokens.
	"""
	return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_expired(expires_at: datetime, now: datetime | None = None) -> bool:
	"""Check if a token has expired."""
	now = now or datetime.now(timezone.utc)
	return now >= expires_at


def generate_token_expiry(hours: int = 24) -> datetime:
	"""Expiry timestamp ``hours`` from now."""
	return datetime.now(timezone.utc) + timedelta(hours=hours)
