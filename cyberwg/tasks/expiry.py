#!/usr/bin/env python3
#
# cyberwg/tasks/expiry.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Disable clients whose expiry date has passed."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from starlette.concurrency import run_in_threadpool

from ..api import wireguard_utils
from ..api.wireguard_utils import WireGuardError
from ..db.roster import RosterStore
from ..utils.config import Config
from ..utils.time import utcnow

_log = logging.getLogger(__name__)

__all__ = ["enforce_expiry"]


async def enforce_expiry(store: RosterStore, cfg: Config, now: Optional[datetime] = None) -> list[str]:
	"""Remove expired-but-enabled clients from WireGuard and mark them disabled.

	A client stays enabled in the roster when its ``wg`` removal fails, so the
	next sweep tries again. Returns the ids that were disabled.
	"""
	now = now or utcnow()
	disabled: list[str] = []

	async with store.lock:
		clients = await run_in_threadpool(store.load)
		for client in clients:
			if not client.enabled or not client.is_expired(now):
				continue
			try:
				await wireguard_utils.remove_peer(cfg.wg_interface, client.public_key)
			except WireGuardError as exc:
				_log.warning("CLIENT_EXPIRY_FAILED id=%s name=%s error=%s", client.id, client.name, exc)
				continue
			client.enabled = False
			disabled.append(client.id)
			_log.info(
				"CLIENT_EXPIRED id=%s name=%s expiry=%s",
				client.id, client.name, client.expiry_date.isoformat() if client.expiry_date else "-",
			)

		if disabled:
			await run_in_threadpool(store.save, clients)

	return disabled
