#!/usr/bin/env python3
#
# cyberwg/models/clients.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""WireGuard client-related Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..utils.time import as_utc, is_expired


class _CamelModel(BaseModel):
	"""Accept camelCase (roster file, browser) and snake_case keys alike."""
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _blank_to_none(value: Any) -> Any:
	if isinstance(value, str) and not value.strip():
		return None
	return value


class ClientRecord(_CamelModel):
	"""A client as persisted in the roster file."""
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

	id: str
	name: str
	private_key: str
	public_key: str
	preshared_key: str
	address: str
	enabled: bool = True
	created_at: datetime
	expiry_date: Optional[datetime] = None
	notes: str = ""
	total_data_transfer: int = 0

	@field_validator("created_at", "expiry_date")
	@classmethod
	def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
		return as_utc(v)

	@field_validator("notes", mode="before")
	@classmethod
	def notes_not_null(cls, v: Any) -> Any:
		return "" if v is None else v

	def is_expired(self, now: Optional[datetime] = None) -> bool:
		return is_expired(self.expiry_date, now)


class ClientCreate(_CamelModel):
	"""Client creation payload."""
	name: Optional[str] = Field(None, max_length=128)
	expiry_days: Optional[int] = Field(None, le=36500)
	notes: Optional[str] = Field(None, max_length=1024)

	@field_validator("name")
	@classmethod
	def strip_name(cls, v: Optional[str]) -> Optional[str]:
		if v is None:
			return v
		return v.strip()

	@field_validator("expiry_days", mode="before")
	@classmethod
	def blank_days(cls, v: Any) -> Any:
		return _blank_to_none(v)


class ClientUpdate(_CamelModel):
	"""Client update payload; only fields present in the body are applied."""
	name: Optional[str] = Field(None, max_length=128)
	expiry_days: Optional[int] = Field(None, le=36500)
	notes: Optional[str] = Field(None, max_length=1024)

	@field_validator("name")
	@classmethod
	def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
		if v is None:
			return v
		v = v.strip()
		if not v:
			raise ValueError("Name must not be empty")
		return v

	@field_validator("expiry_days", mode="before")
	@classmethod
	def blank_days(cls, v: Any) -> Any:
		return _blank_to_none(v)


class ClientPublic(BaseModel):
	"""Public client representation (no private or preshared key)."""
	id: str
	name: str
	public_key: str
	address: str
	enabled: bool
	expired: bool = False
	created_at: datetime
	expiry_date: Optional[datetime] = None
	notes: str = ""
	total_data_transfer: int = 0

	@classmethod
	def from_record(cls, record: ClientRecord, now: Optional[datetime] = None) -> "ClientPublic":
		return cls(
			id=record.id,
			name=record.name,
			public_key=record.public_key,
			address=record.address,
			enabled=record.enabled,
			expired=record.is_expired(now),
			created_at=record.created_at,
			expiry_date=record.expiry_date,
			notes=record.notes,
			total_data_transfer=record.total_data_transfer,
		)


class Bandwidth(BaseModel):
	"""Formatted and raw transfer counters."""
	received: str
	sent: str
	received_raw: int = 0
	sent_raw: int = 0


class ClientView(ClientPublic):
	"""Client with live WireGuard telemetry for the dashboard."""
	bandwidth: Bandwidth
	last_seen: str = "Never"
	last_handshake: int = 0
	endpoint: Optional[str] = None  # last seen host:port of the peer


class PeerStats(BaseModel):
	"""Peer statistics from WireGuard."""
	received: int = Field(default=0, ge=0)  # bytes received from the peer
	sent: int = Field(default=0, ge=0)  # bytes sent to the peer
	last_handshake: int = Field(default=0, ge=0)  # unix timestamp, 0 = never
	endpoint: Optional[str] = None


class ClientConfig(BaseModel):
	"""Full client configuration (for QR code / config file)."""
	private_key: str
	address: str
	dns: Optional[str] = None
	server_public_key: str
	preshared_key: Optional[str] = None
	allowed_ips: str = "0.0.0.0/0, ::/0"
	endpoint: str
	persistent_keepalive: int = Field(default=0, ge=0, le=65535)

	@staticmethod
	def _sanitize_config_value(value: str) -> str:
		"""Prevent newline injection in WireGuard config."""
		if "\n" in value or "\r" in value:
			raise ValueError(f"Config value contains newline: {value!r}")
		return value

	def to_wg_config(self) -> str:
		"""Generate WireGuard config file content."""
		clean = self._sanitize_config_value

		parts = [
			"[Interface]",
			f"PrivateKey = {clean(self.private_key)}",
			f"Address = {clean(self.address)}",
		]
		if self.dns:
			parts.append(f"DNS = {clean(self.dns)}")

		parts.extend([
			"",
			"[Peer]",
			f"PublicKey = {clean(self.server_public_key)}",
		])
		if self.preshared_key:
			parts.append(f"PresharedKey = {clean(self.preshared_key)}")
		parts.extend([
			f"AllowedIPs = {clean(self.allowed_ips)}",
			f"Endpoint = {clean(self.endpoint)}",
			f"PersistentKeepalive = {self.persistent_keepalive}",
		])

		return "\n".join(parts) + "\n"
