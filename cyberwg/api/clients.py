#!/usr/bin/env python3
#
# cyberwg/api/clients.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Client CRUD and enable/disable API routes."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from ..db.roster import RosterError, RosterStore, find_client
from ..models.clients import (
	Bandwidth,
	ClientCreate,
	ClientPublic,
	ClientRecord,
	ClientUpdate,
	ClientView,
	PeerStats,
)
from ..utils.config import Config
from ..utils.deps import get_config, get_store
from ..utils.formatting import format_bytes, format_last_seen
from ..utils.network import AddressPoolExhausted, next_client_address
from ..utils.time import expiry_from_days, utcnow
from . import wireguard_utils
from .auth import client_ip, require_session
from .response import ok_response
from .wireguard_utils import WireGuardError

_log = logging.getLogger(__name__)

router = APIRouter(tags=["clients"], dependencies=[Depends(require_session)])

__all__ = ["router", "build_client_views", "get_client_or_404", "load_clients", "save_clients"]


def build_client_view(record: ClientRecord, stats: Optional[PeerStats], now: datetime) -> ClientView:
	"""Merge a roster record with its live counters."""
	stats = stats or PeerStats()
	public = ClientPublic.from_record(record, now)
	return ClientView(
		**public.model_dump(),
		bandwidth=Bandwidth(
			received=format_bytes(stats.received),
			sent=format_bytes(stats.sent),
			received_raw=stats.received,
			sent_raw=stats.sent,
		),
		last_seen=format_last_seen(stats.last_handshake, now.timestamp()),
		last_handshake=stats.last_handshake,
		endpoint=stats.endpoint,
	)


def build_client_views(
	clients: list[ClientRecord],
	stats: dict[str, PeerStats],
	now: Optional[datetime] = None,
) -> list[ClientView]:
	now = now or utcnow()
	return [build_client_view(c, stats.get(c.public_key), now) for c in clients]


async def load_clients(store: RosterStore) -> list[ClientRecord]:
	"""Load the roster off the event loop; a broken file becomes a 500."""
	try:
		return await run_in_threadpool(store.load)
	except RosterError as exc:
		raise HTTPException(status_code=500, detail=str(exc))


async def save_clients(store: RosterStore, clients: list[ClientRecord]) -> None:
	try:
		await run_in_threadpool(store.save, clients)
	except RosterError as exc:
		raise HTTPException(status_code=500, detail=str(exc))


def get_client_or_404(clients: list[ClientRecord], client_id: str) -> ClientRecord:
	client = find_client(clients, client_id)
	if client is None:
		raise HTTPException(status_code=404, detail="Client not found")
	return client


@router.get("/clients")
async def list_clients(
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""List all clients with live transfer counters."""
	clients = await load_clients(store)
	stats = await wireguard_utils.get_peer_stats(cfg.wg_interface)
	return ok_response(data=build_client_views(clients, stats))


@router.post("/client", status_code=201)
async def create_client(
	request: Request,
	payload: ClientCreate,
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""Create a new client.

	WG-first: the peer is registered with WireGuard before the roster is
	written. If the roster cannot be saved, the peer is removed again so no
	ghost peer stays behind.
	"""
	if not payload.name:
		raise HTTPException(status_code=400, detail="Name is required")

	async with store.lock:
		clients = await load_clients(store)

		try:
			address = next_client_address(cfg.wg_default_address, (c.address for c in clients))
		except AddressPoolExhausted as exc:
			raise HTTPException(status_code=409, detail=str(exc))

		try:
			private_key, public_key, preshared_key = await wireguard_utils.generate_keys()
			await wireguard_utils.add_peer(cfg.wg_interface, public_key, preshared_key, address)
		except WireGuardError as exc:
			raise HTTPException(status_code=500, detail=str(exc))

		now = utcnow()
		record = ClientRecord(
			id=str(uuid.uuid4()),
			name=payload.name,
			private_key=private_key,
			public_key=public_key,
			preshared_key=preshared_key,
			address=address,
			enabled=True,
			created_at=now,
			expiry_date=expiry_from_days(payload.expiry_days, now),
			notes=payload.notes or "",
		)
		clients.append(record)

		try:
			await run_in_threadpool(store.save, clients)
		except RosterError as exc:
			try:
				await wireguard_utils.remove_peer(cfg.wg_interface, public_key)
			except WireGuardError:
				_log.exception("Rollback failed, peer %s... is still registered with WireGuard", public_key[:8])
			raise HTTPException(status_code=500, detail=str(exc))

	_log.info(
		"CLIENT_CREATED id=%s name=%s address=%s ip=%s",
		record.id, record.name, record.address, client_ip(request),
	)
	return ok_response(data=ClientPublic.from_record(record, now))


@router.get("/client/{client_id}")
async def get_client(
	client_id: str,
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""Get a single client with live counters."""
	client = get_client_or_404(await load_clients(store), client_id)
	stats = await wireguard_utils.get_peer_stats(cfg.wg_interface)
	return ok_response(data=build_client_view(client, stats.get(client.public_key), utcnow()))


@router.put("/client/{client_id}")
async def update_client(
	request: Request,
	client_id: str,
	payload: ClientUpdate,
	store: RosterStore = Depends(get_store),
):
	"""Update name, notes or expiry. Only fields present in the body are applied."""
	fields = payload.model_fields_set
	now = utcnow()

	async with store.lock:
		clients = await load_clients(store)
		client = get_client_or_404(clients, client_id)

		if "name" in fields and payload.name is not None:
			client.name = payload.name
		if "notes" in fields:
			client.notes = payload.notes or ""
		if "expiry_days" in fields:
			client.expiry_date = expiry_from_days(payload.expiry_days, now)

		await save_clients(store, clients)

	_log.info(
		"CLIENT_UPDATED id=%s fields=%s ip=%s",
		client.id, ",".join(sorted(fields)) or "-", client_ip(request),
	)
	return ok_response(data=ClientPublic.from_record(client, now))


@router.delete("/client/{client_id}")
async def delete_client(
	request: Request,
	client_id: str,
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""Delete a client.

	The peer is removed from WireGuard first; the roster is left unchanged
	when that fails.
	"""
	async with store.lock:
		clients = await load_clients(store)
		client = get_client_or_404(clients, client_id)

		try:
			await wireguard_utils.remove_peer(cfg.wg_interface, client.public_key)
		except WireGuardError as exc:
			raise HTTPException(status_code=500, detail=str(exc))

		remaining = [c for c in clients if c.id != client_id]
		await save_clients(store, remaining)

	_log.info("CLIENT_DELETED id=%s name=%s ip=%s", client.id, client.name, client_ip(request))
	return ok_response(message="Client deleted")


@router.post("/client/{client_id}/toggle")
async def toggle_client(
	request: Request,
	client_id: str,
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""Flip a client's enabled state."""
	now = utcnow()

	async with store.lock:
		clients = await load_clients(store)
		client = get_client_or_404(clients, client_id)
		enable = not client.enabled

		if enable and client.is_expired(now):
			raise HTTPException(status_code=400, detail="Cannot enable expired client")

		try:
			await wireguard_utils.toggle_peer(cfg.wg_interface, client, enable)
		except WireGuardError as exc:
			raise HTTPException(status_code=500, detail=str(exc))

		client.enabled = enable
		await save_clients(store, clients)

	_log.info(
		"CLIENT_TOGGLED id=%s enabled=%s ip=%s",
		client.id, enable, client_ip(request),
	)
	return ok_response(data=ClientPublic.from_record(client, now))
