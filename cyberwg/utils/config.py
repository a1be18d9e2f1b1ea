#!/usr/bin/env python3
#
# cyberwg/utils/config.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Configuration loading and app-level defaults."""

from __future__ import annotations

import ipaddress
import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path

_log = logging.getLogger(__name__)


class ConfigValidationError(Exception):
	"""Raised when critical configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_PORT = 51821
DEFAULT_PASSWORD = "admin"
DEFAULT_ADDRESS_TEMPLATE = "10.8.0.x"
CLIENTS_FILE_NAME = "clients.json"

# Same rule as the kernel's IFNAMSIZ, restricted to a safe character set
_IFACE_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]{0,14}$")
_ADDRESS_TEMPLATE_RE = re.compile(r"^(\d{1,3}\.\d{1,3}\.\d{1,3})\.x$")


@dataclass(frozen=True)
class Config:
	"""Resolved runtime configuration derived from env and defaults."""
	base_dir: Path
	data_dir: Path
	clients_file: Path
	host: str = "0.0.0.0"
	port: int = DEFAULT_PORT
	password: str = DEFAULT_PASSWORD
	wg_interface: str = "wg0"
	wg_host: str = ""
	wg_port: int = 51820
	wg_default_address: str = DEFAULT_ADDRESS_TEMPLATE
	wg_default_dns: str = "1.1.1.1"
	wg_allowed_ips: str = "0.0.0.0/0, ::/0"
	wg_persistent_keepalive: int = 0
	log_level: str = "INFO"
	expiry_check_interval: int = 300
	session_ttl_hours: int = 24

	@property
	def wg_endpoint(self) -> str:
		"""Endpoint written into client configs."""
		return f"{self.wg_host}:{self.wg_port}"


def _parse_value(raw: str) -> str:
	"""Extract value, respecting quotes and stripping inline comments.

	Handles quoted values correctly (e.g., PASSWORD="s3cr#t") and only strips
	comments from unquoted values.
	"""
	raw = raw.strip()
	if raw and raw[0] in ('"', "'"):
		quote = raw[0]
		end = raw.find(quote, 1)
		if end != -1:
			return raw[1:end]
		# Unterminated quote - fall through to unquoted handling
	if " #" in raw:
		raw = raw.split(" #", 1)[0]
	return raw.strip()


def load_dotenv(dotenv_path: Path | None = None) -> None:
	"""Load simple KEY=VALUE pairs from settings.env.

	Behavior:
	- Ignores blank lines and comments (# ...)
	- Handles `export KEY=VALUE` syntax (common in shell-sourced files)
	- Respects quoted values (doesn't strip # inside quotes)
	- Does not override already-set environment variables
	"""
	project_root = Path(__file__).resolve().parents[2]
	dotenv_path = dotenv_path or (project_root / "settings.env")
	if not dotenv_path.exists():
		return
	for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
		line = raw_line.strip()
		if not line or line.startswith("#"):
			continue
		if "=" not in line:
			continue
		key, value = line.split("=", 1)
		key = key.strip()

		if key.startswith("export "):
			key = key[7:].strip()

		value = _parse_value(value)
		if not key:
			continue
		os.environ.setdefault(key, value)


def _env_int(name: str, default: int, *, minimum: int = 0, maximum: int = 65535) -> int:
	"""Read an integer env var within bounds."""
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError as exc:
		raise ConfigValidationError(f"{name} must be an integer, got {raw!r}") from exc
	if not minimum <= value <= maximum:
		raise ConfigValidationError(f"{name} must be between {minimum} and {maximum}, got {value}")
	return value


def _validate_address_template(template: str) -> str:
	"""Check that the template looks like ``a.b.c.x`` with a valid prefix."""
	m = _ADDRESS_TEMPLATE_RE.fullmatch(template)
	if not m:
		raise ConfigValidationError(
			f"WG_DEFAULT_ADDRESS must look like '10.8.0.x', got {template!r}"
		)
	try:
		ipaddress.IPv4Address(f"{m.group(1)}.0")
	except ValueError as exc:
		raise ConfigValidationError(f"WG_DEFAULT_ADDRESS has an invalid prefix: {template!r}") from exc
	return template


def load_config() -> Config:
	"""Load configuration from environment variables (optionally via settings.env)."""
	load_dotenv()
	project_root = Path(__file__).resolve().parents[2]

	data_dir = Path(os.getenv("DATA_DIR", str(project_root / "data"))).resolve()

	# Self-healing: ensure the data directory exists
	try:
		if data_dir.exists() and not data_dir.is_dir():
			raise ConfigValidationError(f"Path exists but is not a directory: {data_dir}")
		data_dir.mkdir(parents=True, exist_ok=True)
	except OSError as exc:
		raise ConfigValidationError(f"Cannot create data directory: {exc}") from exc

	allowed_levels = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
	log_level = os.getenv("LOG_LEVEL", "INFO").upper()
	if log_level not in allowed_levels:
		log_level = "INFO"

	wg_interface = os.getenv("WG_INTERFACE", "wg0").strip()
	if not _IFACE_NAME_RE.fullmatch(wg_interface):
		raise ConfigValidationError(
			f"WG_INTERFACE must start with a letter, max 15 chars, alphanumeric with - or _: {wg_interface!r}"
		)

	password = os.getenv("PASSWORD", DEFAULT_PASSWORD)
	if not password:
		raise ConfigValidationError("PASSWORD must not be empty")

	return Config(
		base_dir=project_root,
		data_dir=data_dir,
		clients_file=data_dir / CLIENTS_FILE_NAME,
		host=os.getenv("HOST", "0.0.0.0").strip() or "0.0.0.0",
		port=_env_int("PORT", DEFAULT_PORT, minimum=1),
		password=password,
		wg_interface=wg_interface,
		wg_host=os.getenv("WG_HOST", "").strip(),
		wg_port=_env_int("WG_PORT", 51820, minimum=1),
		wg_default_address=_validate_address_template(
			os.getenv("WG_DEFAULT_ADDRESS", DEFAULT_ADDRESS_TEMPLATE).strip()
		),
		wg_default_dns=os.getenv("WG_DEFAULT_DNS", "1.1.1.1").strip(),
		wg_allowed_ips=os.getenv("WG_ALLOWED_IPS", "0.0.0.0/0, ::/0").strip(),
		wg_persistent_keepalive=_env_int("WG_PERSISTENT_KEEPALIVE", 0),
		log_level=log_level,
		expiry_check_interval=_env_int("EXPIRY_CHECK_INTERVAL", 300, minimum=1, maximum=86400),
		session_ttl_hours=_env_int("SESSION_TTL_HOURS", 24, minimum=1, maximum=24 * 30),
	)


# Global config singleton with thread-safe lazy initialization
_config: Config | None = None
_config_lock = threading.Lock()


def get_config() -> Config:
	"""Get the global config singleton (thread-safe)."""
	global _config
	if _config is None:
		with _config_lock:
			if _config is None:  # Double-checked locking
				_config = load_config()
	return _config


def reset_config() -> None:
	"""Reset the cached config. Intended for tests only."""
	global _config
	with _config_lock:
		_config = None
