#!/usr/bin/env python3
#
# cyberwg/db/roster.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""JSON roster of WireGuard clients.

The roster is a single JSON array that is read and rewritten wholesale on
every mutation. Writers must hold ``RosterStore.lock`` across the whole
load/modify/save cycle.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..models.clients import ClientRecord

_log = logging.getLogger(__name__)

__all__ = ["RosterError", "RosterStore", "find_client"]

_FILE_MODE = 0o600


class RosterError(Exception):
	"""Raised when the roster file cannot be read or written."""


def find_client(clients: list[ClientRecord], client_id: str) -> Optional[ClientRecord]:
	"""Linear scan by identifier."""
	for client in clients:
		if client.id == client_id:
			return client
	return None


def _atomic_write_text(path: Path, content: str) -> None:
	"""Atomically write UTF-8 text to a file in the same directory."""
	path.parent.mkdir(parents=True, exist_ok=True)
	fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
	try:
		os.chmod(tmp_path, _FILE_MODE)
		with os.fdopen(fd, "w", encoding="utf-8") as f:
			f.write(content)
			f.flush()
			os.fsync(f.fileno())
		os.replace(tmp_path, path)
	finally:
		with contextlib.suppress(OSError):
			if os.path.exists(tmp_path):
				os.unlink(tmp_path)


class RosterStore:
	"""File-backed client roster."""

	def __init__(self, path: Path) -> None:
		self.path = Path(path)
		self.lock = asyncio.Lock()

	def init(self) -> None:
		"""Create the data directory and an empty roster if none exists."""
		try:
			self.path.parent.mkdir(parents=True, exist_ok=True)
			if not self.path.exists():
				_atomic_write_text(self.path, "[]")
				_log.info("ROSTER_INITIALIZED path=%s", self.path)
		except OSError as exc:
			raise RosterError(f"Cannot initialize roster at {self.path}: {exc}") from exc

	def load(self) -> list[ClientRecord]:
		"""Read all clients. A missing file is an empty roster."""
		try:
			raw = self.path.read_text(encoding="utf-8")
		except FileNotFoundError:
			return []
		except OSError as exc:
			raise RosterError(f"Cannot read roster {self.path}: {exc}") from exc
		except UnicodeDecodeError as exc:
			_log.error("ROSTER_CORRUPT path=%s error=%s", self.path, exc)
			raise RosterError(f"Roster file {self.path} is not valid UTF-8") from exc

		if not raw.strip():
			return []

		try:
			data = json.loads(raw)
		except json.JSONDecodeError as exc:
			_log.error("ROSTER_CORRUPT path=%s error=%s", self.path, exc)
			raise RosterError(f"Roster file {self.path} is not valid JSON") from exc

		if not isinstance(data, list):
			raise RosterError(f"Roster file {self.path} must contain a JSON array")

		try:
			return [ClientRecord.model_validate(item) for item in data]
		except ValidationError as exc:
			_log.error("ROSTER_INVALID path=%s errors=%d", self.path, exc.error_count())
			raise RosterError(f"Roster file {self.path} contains an invalid client record") from exc

	def save(self, clients: list[ClientRecord]) -> None:
		"""Rewrite the roster (pretty-printed, atomic)."""
		payload = [c.model_dump(mode="json", by_alias=True) for c in clients]
		try:
			_atomic_write_text(self.path, json.dumps(payload, indent=2))
		except OSError as exc:
			raise RosterError(f"Cannot write roster {self.path}: {exc}") from exc
		_log.debug("ROSTER_SAVED path=%s clients=%d", self.path, len(clients))
