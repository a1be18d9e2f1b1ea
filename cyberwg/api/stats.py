#!/usr/bin/env python3
#
# cyberwg/api/stats.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Aggregate traffic statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..db.roster import RosterStore
from ..models.clients import ClientRecord, PeerStats
from ..utils.config import Config
from ..utils.deps import get_config, get_store
from ..utils.formatting import format_bytes
from . import wireguard_utils
from .auth import require_session
from .clients import load_clients
from .response import ok_response

router = APIRouter(tags=["stats"], dependencies=[Depends(require_session)])

__all__ = ["router", "summarize"]


def summarize(clients: list[ClientRecord], stats: dict[str, PeerStats]) -> dict:
	"""Totals across the roster; peers unknown to WireGuard count as zero."""
	received = sum(stats[c.public_key].received for c in clients if c.public_key in stats)
	sent = sum(stats[c.public_key].sent for c in clients if c.public_key in stats)
	return {
		"total_clients": len(clients),
		"active_clients": sum(1 for c in clients if c.enabled),
		"total_received": format_bytes(received),
		"total_sent": format_bytes(sent),
		"total_transfer": format_bytes(received + sent),
	}


@router.get("/stats")
async def get_stats(
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""Client counts and total traffic."""
	clients = await load_clients(store)
	stats = await wireguard_utils.get_peer_stats(cfg.wg_interface)
	return ok_response(data=summarize(clients, stats))
