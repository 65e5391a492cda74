"""Interface driver interface."""

from abc import ABC, abstractmethod

from locksmith.models.network import NetState


class Driver(ABC):
    """
    Reconciles a real network interface with a network's desired state.

    configure() always receives the full state, never a diff; the driver
    is responsible for diffing against what the interface currently holds.
    It must be idempotent and safe to call repeatedly with the same or stale
    state. Failures are raised; the sync dispatcher retries and records them.
    """

    @abstractmethod
    def configure(self, net_id: str, state: NetState) -> None:
        """Bring the interface named net_id in line with state.active_peers."""

    def close(self) -> None:
        """Release any resources held by the driver."""
