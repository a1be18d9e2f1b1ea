#!/usr/bin/env python3
#
# cyberwg/api/clients_config.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Client configuration download and QR code API routes."""

from __future__ import annotations

import base64
import io
import logging
import re

import qrcode
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from ..db.roster import RosterStore
from ..models.clients import ClientConfig, ClientRecord
from ..utils.config import Config
from ..utils.deps import get_config, get_store
from ..utils.rate_limit import RATE_LIMIT_HEAVY, limiter
from . import wireguard_utils
from .auth import client_ip, require_session
from .clients import get_client_or_404, load_clients
from .response import ok_response
from .wireguard_utils import WireGuardError

_log = logging.getLogger(__name__)

router = APIRouter(tags=["clients"], dependencies=[Depends(require_session)])

__all__ = ["router", "config_filename", "render_qr_data_url"]


def config_filename(name: str) -> str:
	"""``<name>.conf`` with anything outside ``[A-Za-z0-9_.-]`` replaced."""
	safe_name = re.sub(r"[^\w.-]", "_", name, flags=re.ASCII).lstrip(".")
	return f"{safe_name or 'client'}.conf"


def render_qr_data_url(text: str) -> str:
	"""Encode ``text`` as a PNG QR code and return it as a data URL."""
	qr = qrcode.QRCode(box_size=10, border=4)
	qr.add_data(text)
	qr.make(fit=True)
	img = qr.make_image(fill_color="black", back_color="white")

	buffer = io.BytesIO()
	img.save(buffer, format="PNG")
	return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


async def _build_client_config(client: ClientRecord, cfg: Config) -> ClientConfig:
	"""Assemble the client's config; 503 while the interface is down."""
	try:
		server_public_key = await wireguard_utils.get_server_public_key(cfg.wg_interface)
	except WireGuardError as exc:
		raise HTTPException(status_code=503, detail=str(exc))

	return ClientConfig(
		private_key=client.private_key,
		address=client.address,
		dns=cfg.wg_default_dns or None,
		server_public_key=server_public_key,
		preshared_key=client.preshared_key,
		allowed_ips=cfg.wg_allowed_ips,
		endpoint=cfg.wg_endpoint,
		persistent_keepalive=cfg.wg_persistent_keepalive,
	)


def _render(config: ClientConfig) -> str:
	try:
		return config.to_wg_config()
	except ValueError as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/client/{client_id}/config")
@limiter.limit(RATE_LIMIT_HEAVY)
async def download_client_config(
	request: Request,
	client_id: str,
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""Download the client's WireGuard config as ``<name>.conf``."""
	client = get_client_or_404(await load_clients(store), client_id)
	config_text = _render(await _build_client_config(client, cfg))

	_log.info("CONFIG_DOWNLOADED id=%s name=%s ip=%s", client.id, client.name, client_ip(request))
	return Response(
		content=config_text,
		media_type="text/plain",
		headers={"Content-Disposition": f'attachment; filename="{config_filename(client.name)}"'},
	)


@router.get("/client/{client_id}/qrcode")
@limiter.limit(RATE_LIMIT_HEAVY)
async def client_qrcode(
	request: Request,
	client_id: str,
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""QR code of the client's config as a PNG data URL."""
	client = get_client_or_404(await load_clients(store), client_id)
	config_text = _render(await _build_client_config(client, cfg))

	try:
		data_url = render_qr_data_url(config_text)
	except Exception:
		_log.exception("QR code generation error for client id=%s", client.id)
		raise HTTPException(status_code=500, detail="QR code generation failed")

	_log.info("QR_CODE_DISPLAYED id=%s name=%s ip=%s", client.id, client.name, client_ip(request))
	return ok_response(data={"qrcode": data_url})
