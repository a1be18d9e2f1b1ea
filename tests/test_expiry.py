"""Expiry enforcement against the roster and WireGuard."""

from datetime import datetime, timedelta, timezone

from cyberwg.db.roster import RosterStore
from cyberwg.models import ClientRecord
from cyberwg.tasks.expiry import enforce_expiry

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def _client(client_id: str, *, enabled: bool = True, expiry=None) -> ClientRecord:
	return ClientRecord(
		id=client_id,
		name=client_id,
		private_key=f"priv-{client_id}",
		public_key=f"pub-{client_id}",
		preshared_key=f"psk-{client_id}",
		address="10.8.0.2/32",
		enabled=enabled,
		created_at=NOW - timedelta(days=30),
		expiry_date=expiry,
	)


async def test_expired_enabled_client_is_disabled(cfg, fake_wg):
	store = RosterStore(cfg.clients_file)
	store.save([
		_client("old", expiry=NOW - timedelta(days=1)),
		_client("current", expiry=NOW + timedelta(days=1)),
		_client("forever"),
	])
	fake_wg.peers.update({"pub-old": "x", "pub-current": "x", "pub-forever": "x"})

	assert await enforce_expiry(store, cfg, now=NOW) == ["old"]

	by_id = {c.id: c for c in store.load()}
	assert by_id["old"].enabled is False
	assert by_id["current"].enabled is True
	assert by_id["forever"].enabled is True
	assert "pub-old" not in fake_wg.peers


async def test_already_disabled_clients_are_left_alone(cfg, fake_wg):
	store = RosterStore(cfg.clients_file)
	store.save([_client("old", enabled=False, expiry=NOW - timedelta(days=1))])

	assert await enforce_expiry(store, cfg, now=NOW) == []
	assert fake_wg.calls == []


async def test_failed_removal_keeps_client_enabled(cfg, fake_wg):
	store = RosterStore(cfg.clients_file)
	store.save([_client("old", expiry=NOW - timedelta(days=1))])
	fake_wg.fail.add("set")

	assert await enforce_expiry(store, cfg, now=NOW) == []
	assert store.load()[0].enabled is True

	fake_wg.fail.clear()
	assert await enforce_expiry(store, cfg, now=NOW) == ["old"]


async def test_unchanged_roster_is_not_rewritten(cfg, fake_wg):
	store = RosterStore(cfg.clients_file)
	store.save([_client("forever")])
	before = store.path.stat().st_mtime_ns

	await enforce_expiry(store, cfg, now=NOW)
	assert store.path.stat().st_mtime_ns == before
