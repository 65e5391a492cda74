"""Addresser interface."""

from abc import ABC, abstractmethod

from locksmith.models.network import Network, Peer


class Addresser(ABC):
    """
    Assigns network addresses to peers of a network.

    One instance per addresser name is shared by every network that lists
    it. Instances are called with the network's lock held, so an
    implementation may derive free addresses from the network's state
    without further locking.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def assign(self, net: Network, peer: Peer) -> str:
        """Return an address for the peer that no other peer holds."""

    def release(self, net: Network, peer: Peer) -> None:
        """Forget the address held by the peer, if the addresser tracks it."""
