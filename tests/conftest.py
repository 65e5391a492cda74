"""Shared fixtures for Locksmith tests."""

import base64
import threading
from datetime import datetime, timedelta

import pytest

from locksmith.config import LocksmithConfig
from locksmith.models.enums import PeerMode
from locksmith.models.network import NetConfig, NetState
from locksmith.nm.driver.base import Driver
from locksmith.nm.manager import NetworkManager
from locksmith.nm.registry import default_registries
from locksmith.nm.state.memory import MemoryStore


def make_key(n: int) -> str:
    """A valid WireGuard-style public key: base64 of 32 bytes."""
    return base64.b64encode(bytes([n % 256]) * 32).decode()


class RecordingDriver(Driver):
    """Driver that records every configure() call."""

    def __init__(self, config=None):
        self.calls: list[tuple[str, NetState]] = []
        self.failures_left = 0
        self._lock = threading.Lock()

    def configure(self, net_id, state):
        with self._lock:
            if self.failures_left > 0:
                self.failures_left -= 1
                raise RuntimeError("interface busy")
            self.calls.append((net_id, state))

    def calls_for(self, net_id):
        return [state for nid, state in self.calls if nid == net_id]


class CountingStore(MemoryStore):
    """Memory store that counts writes per network."""

    def __init__(self, config=None):
        super().__init__(config)
        self.puts: dict[str, int] = {}

    def put(self, net_id, state):
        self.puts[net_id] = self.puts.get(net_id, 0) + 1
        super().put(net_id, state)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def make_net(
    net_id: str = "office",
    approve: PeerMode = PeerMode.MANUAL,
    activate: PeerMode = PeerMode.MANUAL,
    **kwargs,
) -> NetConfig:
    return NetConfig(
        id=net_id,
        name=kwargs.pop("name", net_id),
        approve_mode=approve,
        activate_mode=activate,
        **kwargs,
    )


@pytest.fixture
def driver():
    return RecordingDriver()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registries(driver):
    registries = default_registries()
    registries.drivers.register("RECORDING", lambda config: driver)
    registries.stores.register("COUNTING", CountingStore)
    return registries


@pytest.fixture
def make_config():
    def _make(*networks: NetConfig, **overrides) -> LocksmithConfig:
        settings = {
            "STATE_IMPL": "MEMORY",
            "DRIVER_IMPL": "RECORDING",
            "SYNC_RETRY_BACKOFF_SECONDS": 0,
            "NETWORKS": list(networks),
        }
        settings.update(overrides)
        return LocksmithConfig(**settings)

    return _make


@pytest.fixture
def make_manager(make_config, registries, clock):
    def _make(*networks: NetConfig, **overrides) -> NetworkManager:
        return NetworkManager(make_config(*networks, **overrides), registries, now=clock)

    return _make
