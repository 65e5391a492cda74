"""State store interface."""

from abc import ABC, abstractmethod

from locksmith.models.network import NetState


class StateStore(ABC):
    """
    Persistent get/put access to each network's mutable state.

    Implementations are blocking; the network manager calls them from a
    worker thread. get() creates and returns empty state for a network that
    has never been stored.
    """

    @abstractmethod
    def get(self, net_id: str) -> NetState:
        """Load the state of a network."""

    @abstractmethod
    def put(self, net_id: str, state: NetState) -> None:
        """Persist the state of a network, replacing what was stored."""

    def close(self) -> None:
        """Release any resources held by the store."""
