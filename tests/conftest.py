"""Shared fixtures: a temp roster, a fake ``wg`` and HTTP clients.

The fake replaces the two subprocess entry points of
``cyberwg.api.wireguard_utils`` so no test ever needs the real tools.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from httpx import ASGITransport, AsyncClient

from cyberwg import create_app
from cyberwg.api import wireguard_utils
from cyberwg.utils.config import Config
from cyberwg.utils.rate_limit import limiter

PASSWORD = "s3cret-pass"


@dataclass
class FakeWireGuard:
	"""In-memory stand-in for ``wg`` / ``wg-quick``.

	``fail`` holds subcommand names (``genkey``, ``pubkey``, ``genpsk``,
	``set``, ``show``, ``wg-quick``) that should exit non-zero.
	"""
	server_public_key: str = "SERVERPUBKEY="
	peers: dict[str, str] = field(default_factory=dict)
	stats: dict[str, tuple[int, int, int]] = field(default_factory=dict)
	fail: set[str] = field(default_factory=set)
	calls: list[tuple[str, ...]] = field(default_factory=list)
	_counter: int = 0

	async def run(self, *args: str, timeout: int = 30) -> tuple[int, str, str]:
		cmd = args
		self.calls.append(cmd)
		tool, sub = cmd[0], cmd[1]
		key = tool if tool == "wg-quick" else sub
		if key in self.fail:
			return 1, "", f"{key}: simulated failure"

		if tool == "wg-quick":
			return 0, "", ""
		if sub == "genkey":
			self._counter += 1
			return 0, f"priv{self._counter}=\n", ""
		if sub == "genpsk":
			return 0, f"psk{self._counter}=\n", ""
		if sub == "show":
			if cmd[-1] == "public-key":
				return 0, self.server_public_key + "\n", ""
			return 0, self.dump(), ""
		if sub == "set":
			public_key = cmd[4]
			if cmd[-1] == "remove":
				self.peers.pop(public_key, None)
			else:
				self.peers[public_key] = cmd[cmd.index("allowed-ips") + 1]
			return 0, "", ""
		return 0, "", ""

	async def run_stdin(self, stdin_data: str, *args: str, timeout: int = 30) -> tuple[int, str, str]:
		cmd = args
		self.calls.append(cmd)
		if cmd[1] in self.fail:
			return 1, "", f"{cmd[1]}: simulated failure"
		return 0, f"pub-{stdin_data.strip()}\n", ""

	def dump(self) -> str:
		lines = [f"SERVERPRIV=\t{self.server_public_key}\t51820\toff"]
		for public_key, (handshake, rx, tx) in self.stats.items():
			lines.append(f"{public_key}\t(none)\t203.0.113.5:40000\t10.8.0.2/32\t{handshake}\t{rx}\t{tx}\toff")
		return "\n".join(lines) + "\n"

	def commands(self, sub: str) -> list[tuple[str, ...]]:
		return [c for c in self.calls if c[1] == sub or c[0] == sub]


@pytest.fixture
def fake_wg(monkeypatch) -> FakeWireGuard:
	fake = FakeWireGuard()
	monkeypatch.setattr(wireguard_utils, "run_wg_command", fake.run)
	monkeypatch.setattr(wireguard_utils, "run_wg_command_stdin", fake.run_stdin)
	return fake


@pytest.fixture
def cfg(tmp_path) -> Config:
	return Config(
		base_dir=tmp_path,
		data_dir=tmp_path,
		clients_file=tmp_path / "clients.json",
		password=PASSWORD,
		wg_host="vpn.example.com",
		wg_persistent_keepalive=25,
		expiry_check_interval=300,
	)


@pytest.fixture(autouse=True)
def _reset_rate_limits():
	limiter.reset()
	yield
	limiter.reset()


@pytest.fixture
def app(cfg, fake_wg):
	return create_app(cfg)


@pytest.fixture
def store(app):
	return app.state.store


async def login(client: AsyncClient, password: str = PASSWORD):
	"""Fetch the login form for a CSRF token, then submit it."""
	await client.get("/login")
	token = client.cookies.get("csrf_token")
	return await client.post("/login", data={"password": password, "csrf_token": token})


@pytest.fixture
async def anon_client(app):
	async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
		yield c


@pytest.fixture
async def client(app):
	"""Logged-in client that sends the CSRF header on every request."""
	async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
		resp = await login(c)
		assert resp.status_code == 303
		c.headers["X-CSRF-Token"] = c.cookies["csrf_token"]
		yield c
