#!/usr/bin/env python3
#
# cyberwg/api/wireguard_utils.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""WireGuard utility functions.

Everything that touches the external ``wg`` / ``wg-quick`` tools lives here.
Commands are executed without a shell; the preshared key is handed over via a
private temporary file.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass

from ..models.clients import ClientRecord, PeerStats

_log = logging.getLogger(__name__)

__all__ = [
	"WireGuardError",
	"WgPeerDump",
	"safe_int",
	"run_wg_command",
	"run_wg_command_stdin",
	"wg_set_peer_with_psk",
	"generate_keys",
	"get_server_public_key",
	"add_peer",
	"remove_peer",
	"toggle_peer",
	"parse_wg_show_dump",
	"get_peer_stats",
]

# Timeout for wg commands (seconds)
WG_COMMAND_TIMEOUT = 30

# Secondary timeout for process cleanup after kill (seconds)
_KILL_WAIT_TIMEOUT = 5


class WireGuardError(Exception):
	"""Raised when a wg / wg-quick invocation fails."""

	def __init__(self, message: str, *, returncode: int = 1, stderr: str = "") -> None:
		super().__init__(message)
		self.returncode = returncode
		self.stderr = stderr


def _validate_command(*args: str) -> tuple[str, ...]:
	"""Callers name the binary (``wg``, ``wg-quick`` or a path) explicitly."""
	if not args or not str(args[0]).strip():
		raise ValueError("Command must not be empty")
	return tuple(args)


def safe_int(value: str, default: int = 0) -> int:
	"""Safely convert string to int, returning default on failure."""
	try:
		return int(value) if value else default
	except (ValueError, TypeError):
		return default


async def _communicate(
	cmd: tuple[str, ...],
	stdin_data: str | None,
	timeout: int,
) -> tuple[int, str, str]:
	proc = await asyncio.create_subprocess_exec(
		*cmd,
		stdin=asyncio.subprocess.PIPE if stdin_data is not None else None,
		stdout=asyncio.subprocess.PIPE,
		stderr=asyncio.subprocess.PIPE,
	)
	try:
		stdout_bytes, stderr_bytes = await asyncio.wait_for(
			proc.communicate(input=stdin_data.encode("utf-8") if stdin_data is not None else None),
			timeout=timeout,
		)
		# returncode is always set after communicate() completes
		return (
			proc.returncode if proc.returncode is not None else 1,
			stdout_bytes.decode("utf-8", errors="replace"),
			stderr_bytes.decode("utf-8", errors="replace"),
		)
	except asyncio.TimeoutError:
		proc.kill()
		# Wait with secondary timeout to avoid zombie processes
		try:
			await asyncio.wait_for(proc.wait(), timeout=_KILL_WAIT_TIMEOUT)
		except asyncio.TimeoutError:
			pass
		return 1, "", f"Command timed out after {timeout}s"


async def run_wg_command(*args: str, timeout: int = WG_COMMAND_TIMEOUT) -> tuple[int, str, str]:
	"""Run a command with a timeout; failures come back as exit code 1."""
	try:
		return await _communicate(_validate_command(*args), None, timeout)
	except Exception as e:
		return 1, "", str(e)


async def run_wg_command_stdin(stdin_data: str, *args: str, timeout: int = WG_COMMAND_TIMEOUT) -> tuple[int, str, str]:
	"""Run a command, feeding ``stdin_data`` to it."""
	try:
		return await _communicate(_validate_command(*args), stdin_data, timeout)
	except Exception as e:
		return 1, "", str(e)


async def _checked(*args: str) -> str:
	"""Run a command and raise WireGuardError on a non-zero exit."""
	code, stdout, stderr = await run_wg_command(*args)
	if code != 0:
		err = stderr.strip()
		_log.error("WG_COMMAND_FAILED cmd=%s code=%d stderr=%s", " ".join(args[:3]), code, err)
		raise WireGuardError(f"'{' '.join(args[:2])}' failed: {err}", returncode=code, stderr=err)
	return stdout


async def wg_set_peer_with_psk(
	interface: str,
	public_key: str,
	allowed_ips: str,
	preshared_key: str,
	timeout: int = WG_COMMAND_TIMEOUT,
) -> tuple[int, str, str]:
	"""Add a WireGuard peer with a preshared key using a secure temp file.

	``wg set ... preshared-key`` only accepts a file path, and /dev/stdin is not
	reliable inside containers.
	"""
	fd = None
	tmp_path = None
	try:
		fd, tmp_path = tempfile.mkstemp(prefix="wg_psk_", suffix=".key")
		os.chmod(tmp_path, 0o600)
		os.write(fd, preshared_key.encode("utf-8"))
		os.close(fd)
		fd = None

		return await run_wg_command(
			"wg", "set", interface,
			"peer", public_key,
			"preshared-key", tmp_path,
			"allowed-ips", allowed_ips,
			timeout=timeout,
		)
	finally:
		if fd is not None:
			try:
				os.close(fd)
			except OSError:
				pass
		if tmp_path and os.path.exists(tmp_path):
			try:
				os.unlink(tmp_path)
			except OSError:
				pass


async def generate_keys() -> tuple[str, str, str]:
	"""Generate a private key, its public key and a preshared key.

	Returns:
		Tuple of (private_key, public_key, preshared_key)
	"""
	exit_code, privkey, stderr = await run_wg_command("wg", "genkey")
	if exit_code != 0 or not privkey.strip():
		raise WireGuardError(f"Failed to generate private key: {stderr.strip()}", returncode=exit_code, stderr=stderr)
	privkey = privkey.strip()

	exit_code, pubkey, stderr = await run_wg_command_stdin(privkey, "wg", "pubkey")
	if exit_code != 0 or not pubkey.strip():
		raise WireGuardError(f"Failed to derive public key: {stderr.strip()}", returncode=exit_code, stderr=stderr)

	exit_code, psk, stderr = await run_wg_command("wg", "genpsk")
	if exit_code != 0 or not psk.strip():
		raise WireGuardError(f"Failed to generate PSK: {stderr.strip()}", returncode=exit_code, stderr=stderr)

	return privkey, pubkey.strip(), psk.strip()


async def get_server_public_key(interface: str) -> str:
	"""Public key of the running interface.

	Raises:
		WireGuardError: If the interface is down or has no key.
	"""
	code, stdout, stderr = await run_wg_command("wg", "show", interface, "public-key")
	if code != 0 or not stdout.strip():
		_log.warning(
			"public-key retrieval failed for interface=%s: %s",
			interface,
			stderr.strip() if stderr else "no output",
		)
		raise WireGuardError(
			f"WireGuard interface '{interface}' is not running. Bring it up first.",
			returncode=code,
			stderr=stderr,
		)
	return stdout.strip()


async def add_peer(interface: str, public_key: str, preshared_key: str, address: str) -> None:
	"""Register a peer on the interface and persist the interface config."""
	code, _, stderr = await wg_set_peer_with_psk(interface, public_key, address, preshared_key)
	if code != 0:
		err = stderr.strip()
		_log.error("WG_SET_FAILED interface=%s code=%d stderr=%s", interface, code, err)
		raise WireGuardError(f"Failed to add peer to WireGuard: {err}", returncode=code, stderr=err)
	await _checked("wg-quick", "save", interface)


async def remove_peer(interface: str, public_key: str) -> None:
	"""Remove a peer from the interface and persist the interface config."""
	await _checked("wg", "set", interface, "peer", public_key, "remove")
	await _checked("wg-quick", "save", interface)


async def toggle_peer(interface: str, client: ClientRecord, enabled: bool) -> None:
	"""Bring the runtime peer table in line with ``enabled``."""
	if enabled:
		await add_peer(interface, client.public_key, client.preshared_key, client.address)
	else:
		await remove_peer(interface, client.public_key)


@dataclass
class WgPeerDump:
	"""Structured representation of a peer line from `wg show <iface> dump`."""
	interface: str | None
	public_key: str
	endpoint: str | None
	allowed_ips: str | None
	handshake_ts: int
	rx: int
	tx: int


def parse_wg_show_dump(stdout: str) -> list[WgPeerDump]:
	"""Parse dump output into structured peer records.

	Handles both output formats:
	- Format A (9 cols, ``wg show all dump``): iface, pubkey, psk, endpoint, allowed-ips, handshake, rx, tx, keepalive
	- Format B (8 cols, ``wg show <iface> dump``): pubkey, psk, endpoint, allowed-ips, handshake, rx, tx, keepalive

	Interface header lines (4-5 cols) are skipped but remembered for format B.
	"""
	results: list[WgPeerDump] = []
	last_iface: str | None = None

	for line in stdout.strip().split("\n"):
		if not line:
			continue
		parts = line.split("\t")

		# Interface header: [iface,] privkey, pubkey, listen_port, fwmark
		if len(parts) < 8:
			if len(parts) == 5:
				last_iface = parts[0]
			continue

		if len(parts) >= 9:
			offset = 1
			iface = parts[0] or last_iface
		else:
			offset = 0
			iface = last_iface

		if iface:
			last_iface = iface

		endpoint = parts[offset + 2]
		allowed = parts[offset + 3]

		results.append(WgPeerDump(
			interface=iface,
			public_key=parts[offset],
			endpoint=None if endpoint == "(none)" else endpoint,
			allowed_ips=None if allowed == "(none)" else allowed,
			handshake_ts=safe_int(parts[offset + 4]),
			rx=safe_int(parts[offset + 5]),
			tx=safe_int(parts[offset + 6]),
		))

	return results


async def get_peer_stats(interface: str) -> dict[str, PeerStats]:
	"""Live transfer counters per public key; empty when wg is unavailable."""
	code, stdout, stderr = await run_wg_command("wg", "show", interface, "dump")
	if code != 0:
		_log.warning("Error getting bandwidth stats for %s: %s", interface, stderr.strip())
		return {}

	return {
		peer.public_key: PeerStats(
			received=peer.rx,
			sent=peer.tx,
			last_handshake=peer.handshake_ts,
			endpoint=peer.endpoint,
		)
		for peer in parse_wg_show_dump(stdout)
	}
