import asyncio

import pytest

from ifungi_client.services import HeartbeatConfig, HeartbeatMonitor, InMemoryTelemetryStore
from ifungi_client.storage import SessionStore


class FakeClock:
    """Millisecond clock the tests move by hand"""

    def __init__(self, start_ms=1_700_000_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


async def settle(rounds=5):
    """Let scheduled store callbacks run"""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryTelemetryStore()


@pytest.fixture
def session_store(tmp_path):
    return SessionStore(db_path=str(tmp_path / "session.db"))


@pytest.fixture
def monitor(clock):
    return HeartbeatMonitor(HeartbeatConfig(), clock=clock)
