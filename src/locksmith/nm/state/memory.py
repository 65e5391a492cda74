"""In-memory state store, lost on restart."""

import threading

from locksmith.models.network import NetState
from locksmith.nm.state.base import StateStore


class MemoryStore(StateStore):
    """Keeps deep copies of each network's state in a dictionary."""

    def __init__(self, config=None):
        self._states: dict[str, NetState] = {}
        self._lock = threading.Lock()

    def get(self, net_id: str) -> NetState:
        with self._lock:
            state = self._states.setdefault(net_id, NetState())
            return state.copy()

    def put(self, net_id: str, state: NetState) -> None:
        with self._lock:
            self._states[net_id] = state.copy()
