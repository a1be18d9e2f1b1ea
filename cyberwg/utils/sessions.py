#!/usr/bin/env python3
#
# cyberwg/utils/sessions.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""In-process login sessions keyed by hashed cookie token."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from .crypto import generate_token_expiry, hash_token, new_token, token_expired

_log = logging.getLogger(__name__)

__all__ = ["SessionStore"]


class SessionStore:
	"""Issue, validate and revoke session tokens.

	Sessions live in memory, so they do not survive a restart and are not
	shared between worker processes.
	"""

	def __init__(self, ttl_hours: int = 24) -> None:
		self.ttl_hours = ttl_hours
		self._sessions: dict[str, datetime] = {}
		self._lock = threading.Lock()

	def create(self) -> tuple[str, datetime]:
		"""Start a session and return (token, expires_at)."""
		token = new_token()
		expires_at = generate_token_expiry(self.ttl_hours)
		with self._lock:
			self._sessions[hash_token(token)] = expires_at
		return token, expires_at

	def validate(self, token: str | None) -> bool:
		"""True if the token belongs to a live session; expired ones are dropped."""
		if not token:
			return False
		key = hash_token(token)
		with self._lock:
			expires_at = self._sessions.get(key)
			if expires_at is None:
				return False
			if token_expired(expires_at):
				del self._sessions[key]
				return False
		return True

	def revoke(self, token: str | None) -> None:
		if not token:
			return
		with self._lock:
			self._sessions.pop(hash_token(token), None)

	def purge_expired(self) -> int:
		"""Drop expired sessions, returning how many were removed."""
		now = datetime.now(timezone.utc)
		with self._lock:
			stale = [k for k, exp in self._sessions.items() if token_expired(exp, now)]
			for key in stale:
				del self._sessions[key]
		if stale:
			_log.info("SESSION_CLEANUP removed=%d", len(stale))
		return len(stale)

	def __len__(self) -> int:
		with self._lock:
			return len(self._sessions)
