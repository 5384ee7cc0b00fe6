"""Shared fixtures for the live subsystem: fake clock, accounts, settings and context."""

import pytest
from pydantic import SecretStr

from roomcast.app_config import LiveSettings
from roomcast.domain.accounts.account_directory import Account, InMemoryAccountDirectory
from roomcast.domain.live.live_context import LiveContext, build_live_context

TOKEN_SECRET = "token-secret-0123456789-abcdefghijklmnop"
EDGE_SECRET = "edge-secret-9876543210-zyxwvutsrqponmlkji"
MEDIA_BASE_URL = "https://media.example.test"
ROOM = "lobby/main"


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingSender:
    """Push endpoint sender that keeps every frame it is given."""

    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.fail = fail

    async def __call__(self, frame: dict) -> None:
        if self.fail:
            raise ConnectionError("endpoint gone")
        self.frames.append(frame)

    def events(self, name: str) -> list[dict]:
        return [frame["data"] for frame in self.frames if frame["event"] == name]


def make_settings(**overrides) -> LiveSettings:
    values = {
        "media_base_url": MEDIA_BASE_URL,
        "media_app": "live",
        "token_secret": SecretStr(TOKEN_SECRET),
        "edge_shared_secret": SecretStr(EDGE_SECRET),
        "token_ttl_seconds": 600,
        "sweep_interval_seconds": 10,
        "starting_ttl_seconds": 90,
        "enabled": True,
        "signing_ready": True,
        "edge_ready": True,
    }
    values.update(overrides)
    return LiveSettings(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def accounts() -> InMemoryAccountDirectory:
    """Three accounts in ROOM: alice, bob and carol."""
    directory = InMemoryAccountDirectory()
    for account_id, name in (("u_alice", "alice"), ("u_bob", "bob"), ("u_carol", "carol")):
        directory.register(
            Account(
                account_id=account_id,
                token=f"tok_{name}",
                name=name,
                ihash=f"ih_{name}",
                current_room=ROOM,
            )
        )
    return directory


@pytest.fixture
def live_settings() -> LiveSettings:
    return make_settings()


@pytest.fixture
def live_context(
    live_settings: LiveSettings,
    accounts: InMemoryAccountDirectory,
    clock: FakeClock,
) -> LiveContext:
    return build_live_context(live_settings, accounts=accounts, clock=clock)
