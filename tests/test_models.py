"""Client models and config rendering."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from cyberwg.models import ClientConfig, ClientCreate, ClientPublic, ClientRecord, ClientUpdate


def _record(**overrides) -> ClientRecord:
	data = {
		"id": "c1",
		"name": "laptop",
		"privateKey": "PRIV=",
		"publicKey": "PUB=",
		"presharedKey": "PSK=",
		"address": "10.8.0.2/32",
		"enabled": True,
		"createdAt": "2026-01-01T00:00:00.000Z",
		"expiryDate": None,
		"notes": None,
		"totalDataTransfer": 0,
	}
	data.update(overrides)
	return ClientRecord.model_validate(data)


def test_record_reads_camel_case_and_defaults_notes():
	record = _record()
	assert record.public_key == "PUB="
	assert record.notes == ""
	assert record.created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_record_dumps_camel_case():
	dumped = _record().model_dump(mode="json", by_alias=True)
	assert {"privateKey", "publicKey", "presharedKey", "createdAt", "expiryDate", "totalDataTransfer"} <= dumped.keys()


def test_record_ignores_unknown_keys():
	assert _record(legacyField="x").name == "laptop"


def test_public_view_hides_secrets():
	now = datetime(2026, 6, 1, tzinfo=timezone.utc)
	public = ClientPublic.from_record(_record(expiryDate="2026-02-01T00:00:00Z"), now)
	dumped = public.model_dump()
	assert "private_key" not in dumped
	assert "preshared_key" not in dumped
	assert public.expired is True


def test_create_accepts_blank_expiry_days():
	payload = ClientCreate.model_validate({"name": "  phone ", "expiryDays": "", "notes": "x"})
	assert payload.name == "phone"
	assert payload.expiry_days is None


def test_create_rejects_absurd_expiry():
	with pytest.raises(ValidationError):
		ClientCreate.model_validate({"name": "a", "expiryDays": 10 ** 6})


def test_update_tracks_present_fields():
	payload = ClientUpdate.model_validate({"notes": "hello"})
	assert payload.model_fields_set == {"notes"}


def test_update_rejects_blank_name():
	with pytest.raises(ValidationError):
		ClientUpdate.model_validate({"name": "   "})


def test_config_renders_full_file():
	config = ClientConfig(
		private_key="CLIENTPRIV=",
		address="10.8.0.2/32",
		dns="1.1.1.1",
		server_public_key="SERVERPUB=",
		preshared_key="PSK=",
		allowed_ips="0.0.0.0/0, ::/0",
		endpoint="vpn.example.com:51820",
		persistent_keepalive=25,
	)
	assert config.to_wg_config() == (
		"[Interface]\n"
		"PrivateKey = CLIENTPRIV=\n"
		"Address = 10.8.0.2/32\n"
		"DNS = 1.1.1.1\n"
		"\n"
		"[Peer]\n"
		"PublicKey = SERVERPUB=\n"
		"PresharedKey = PSK=\n"
		"AllowedIPs = 0.0.0.0/0, ::/0\n"
		"Endpoint = vpn.example.com:51820\n"
		"PersistentKeepalive = 25\n"
	)


def test_config_rejects_newline_injection():
	config = ClientConfig(
		private_key="CLIENTPRIV=",
		address="10.8.0.2/32\n[Peer]",
		server_public_key="SERVERPUB=",
		endpoint="vpn.example.com:51820",
	)
	with pytest.raises(ValueError):
		config.to_wg_config()
