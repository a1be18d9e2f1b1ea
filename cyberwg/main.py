#!/usr/bin/env python3
#
# cyberwg/main.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""FastAPI application factory and startup lifecycle wiring."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .api import clients as clients_api
from .api import clients_config as clients_config_api
from .api import frontend as frontend_ui
from .api import stats as stats_api
from .db.roster import RosterError, RosterStore
from .middleware.csrf import CSRFMiddleware
from .tasks.expiry import enforce_expiry
from .utils.banner import print_banner_once
from .utils.config import DEFAULT_PASSWORD, Config, get_config
from .utils.rate_limit import limiter
from .utils.request_id import RequestIDMiddleware
from .utils.scheduler import Scheduler
from .utils.sessions import SessionStore
from .utils.version import APP_NAME, VERSION

_log = logging.getLogger(__name__)

# ANSI color codes for log levels (if TTY)
_LOG_COLORS = {
	"DEBUG": "\033[36m",    # Cyan
	"INFO": "\033[32m",     # Green
	"WARNING": "\033[33m",  # Yellow
	"ERROR": "\033[31m",    # Red
	"CRITICAL": "\033[35m", # Magenta
}
_RESET = "\033[0m"
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SESSION_CLEANUP_INTERVAL_SECONDS = 3600.0
_EXPIRY_JOB_TIMEOUT_SECONDS = 120.0


class _ColoredFormatter(logging.Formatter):
	"""Pads the level name and colors it."""

	def format(self, record):
		orig_levelname = record.levelname
		color = _LOG_COLORS.get(orig_levelname, "")
		record.levelname = f"{color}{orig_levelname:<8}{_RESET if color else ''}"
		try:
			return super().format(record)
		finally:
			record.levelname = orig_levelname


def _setup_logging(log_level: str) -> None:
	"""Route every logger, uvicorn's included, through one stdout handler."""
	level = getattr(logging, log_level, logging.INFO)
	if sys.stdout.isatty():
		formatter: logging.Formatter = _ColoredFormatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)
	else:
		formatter = logging.Formatter(
			fmt=_LOG_FORMAT.replace("%(levelname)s", "%(levelname)-8s"),
			datefmt=_DATE_FORMAT,
		)

	logging.basicConfig(level=level, handlers=[logging.StreamHandler(sys.stdout)], force=True)
	for handler in logging.root.handlers:
		handler.setFormatter(formatter)

	for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
		logger = logging.getLogger(name)
		logger.handlers.clear()
		logger.setLevel(level)
		logger.propagate = True

	for name in ("httpcore", "httpx", "multipart", "PIL"):
		logging.getLogger(name).setLevel(logging.WARNING)


def _warn_insecure_defaults(cfg: Config) -> None:
	if cfg.password == DEFAULT_PASSWORD:
		_log.warning("PASSWORD is the default %r, set PASSWORD before exposing the panel", DEFAULT_PASSWORD)
	if not cfg.wg_host:
		_log.warning("WG_HOST is empty, client configs will carry an endpoint without a host")


@asynccontextmanager
async def _lifespan(app: FastAPI):
	"""Application lifespan manager."""
	cfg: Config = app.state.cfg
	store: RosterStore = app.state.store
	sessions: SessionStore = app.state.sessions

	try:
		store.init()
	except RosterError:
		_log.exception("Roster initialization failed")
		raise
	_warn_insecure_defaults(cfg)
	_log.info(
		"%s v%s serving interface=%s roster=%s",
		APP_NAME, VERSION, cfg.wg_interface, cfg.clients_file,
	)

	async def _expiry_job() -> None:
		await enforce_expiry(store, cfg)

	async def _session_cleanup_job() -> None:
		sessions.purge_expired()

	scheduler = Scheduler()
	scheduler.every(
		"expiry-enforcement",
		cfg.expiry_check_interval,
		_expiry_job,
		first_run_after=5.0,
		timeout=_EXPIRY_JOB_TIMEOUT_SECONDS,
	)
	scheduler.every("session-cleanup", _SESSION_CLEANUP_INTERVAL_SECONDS, _session_cleanup_job)
	app.state.scheduler = scheduler
	await scheduler.start()

	try:
		yield
	finally:
		await scheduler.shutdown(grace=5.0)


def create_app(cfg: Optional[Config] = None) -> FastAPI:
	"""Application factory for CyberWG."""
	print_banner_once()

	cfg = cfg or get_config()
	_setup_logging(cfg.log_level)

	app = FastAPI(
		title=APP_NAME,
		description="WireGuard peer administration panel",
		version=VERSION,
		lifespan=_lifespan,
		docs_url="/api/docs",
		redoc_url="/api/redoc",
	)

	app.state.cfg = cfg
	app.state.store = RosterStore(cfg.clients_file)
	app.state.sessions = SessionStore(ttl_hours=cfg.session_ttl_hours)

	# ─── MIDDLEWARE ──────────────────────────────────────────
	# Last added runs first: request IDs wrap the CSRF check.
	app.add_middleware(CSRFMiddleware)
	app.add_middleware(RequestIDMiddleware)

	app.state.limiter = limiter
	app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

	# ─── STATIC FILES ────────────────────────────────────────
	static_path = Path(__file__).parent / "static"
	if static_path.exists():
		app.mount("/static", StaticFiles(directory=str(static_path)), name="static")
	else:
		_log.warning("Static files directory not found: %s", static_path)

	# ─── API ROUTES ──────────────────────────────────────────
	app.include_router(clients_api.router, prefix="/api")
	app.include_router(clients_config_api.router, prefix="/api")
	app.include_router(stats_api.router, prefix="/api")

	# ─── FRONTEND ROUTES ─────────────────────────────────────
	app.include_router(frontend_ui.router)

	return app
