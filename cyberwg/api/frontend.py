#!/usr/bin/env python3
#
# cyberwg/api/frontend.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Frontend HTML routes: login, logout and the dashboard."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from ..db.roster import RosterError, RosterStore
from ..tasks.expiry import enforce_expiry
from ..utils.config import Config
from ..utils.crypto import verify_secret
from ..utils.deps import get_config, get_store
from ..utils.rate_limit import RATE_LIMIT_AUTH, limiter
from ..utils.time import utcnow
from ..utils.version import APP_NAME, VERSION
from . import wireguard_utils
from .auth import client_ip, close_session, is_authenticated, open_session
from .clients import build_client_views, load_clients
from .stats import summarize

_log = logging.getLogger(__name__)

router = APIRouter(tags=["frontend"])

_templates_path = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(_templates_path))
templates.env.globals["VERSION"] = VERSION
templates.env.globals["APP_NAME"] = APP_NAME


def _get_csrf_token(request: Request) -> str:
	"""Get CSRF token from request state, or empty string if not set."""
	token = getattr(request.state, "csrf_token", None)
	if not token:
		_log.warning("CSRF token missing from request state, check middleware ordering")
		return ""
	return token


def _login_page(request: Request, error: str | None = None, status_code: int = 200) -> HTMLResponse:
	return templates.TemplateResponse(
		request,
		"login.html",
		{"csrf_token": _get_csrf_token(request), "error": error},
		status_code=status_code,
	)


@router.get("/", response_class=HTMLResponse)
async def dashboard(
	request: Request,
	store: RosterStore = Depends(get_store),
	cfg: Config = Depends(get_config),
):
	"""Dashboard page. Expired clients are disabled before rendering."""
	if not is_authenticated(request):
		return RedirectResponse(url="/login", status_code=303)

	try:
		await enforce_expiry(store, cfg)
	except RosterError as exc:
		raise HTTPException(status_code=500, detail=str(exc))

	now = utcnow()
	clients = await load_clients(store)
	stats = await wireguard_utils.get_peer_stats(cfg.wg_interface)

	return templates.TemplateResponse(request, "index.html", {
		"csrf_token": _get_csrf_token(request),
		"clients": build_client_views(clients, stats, now),
		"summary": summarize(clients, stats),
		"wg_host": cfg.wg_host,
	})


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
	"""Login page."""
	if is_authenticated(request):
		return RedirectResponse(url="/", status_code=303)
	return _login_page(request)


@router.post("/login", response_class=HTMLResponse)
@limiter.limit(RATE_LIMIT_AUTH)
def login(
	request: Request,
	password: str = Form(""),
	cfg: Config = Depends(get_config),
):
	"""Check the admin password and start a session."""
	ip = client_ip(request)
	if not verify_secret(password, cfg.password):
		_log.info("LOGIN_FAILED ip=%s", ip)
		return _login_page(request, error="Invalid password", status_code=401)

	response = RedirectResponse(url="/", status_code=303)
	open_session(request, response)
	_log.info("LOGIN_SUCCESS ip=%s", ip)
	return response


@router.get("/logout")
def logout(request: Request):
	"""End the session and return to the login page."""
	response = RedirectResponse(url="/login", status_code=303)
	close_session(request, response)
	_log.info("LOGOUT ip=%s", client_ip(request))
	return response
