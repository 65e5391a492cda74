"""
Local interface driver.

Interacts with the interfaces of the local machine. It is suitable for small
installations where an administrator is willing to take the risk of a single
server carrying the tunnels of all users.

The driver builds the desired peer list (public key -> allowed addresses)
for the interface, diffs it against the peer list it last applied, and logs
the resulting changes.
"""

import threading

from locksmith.models.network import NetState
from locksmith.nm.driver.base import Driver
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)


def desired_peers(state: NetState) -> dict[str, list[str]]:
    """Build the interface peer list: public key -> sorted allowed addresses."""
    return {
        pubkey: sorted(peer.addresses.values())
        for pubkey, peer in state.active_peers.items()
    }


class LocalDriver(Driver):
    """Driver for interfaces on the local machine."""

    def __init__(self, config=None):
        self._applied: dict[str, dict[str, list[str]]] = {}
        self._lock = threading.Lock()

    def configure(self, net_id: str, state: NetState) -> None:
        logger.info(f"Configuring '{net_id}'")
        desired = desired_peers(state)

        with self._lock:
            current = self._applied.get(net_id, {})

            added = [k for k in desired if k not in current]
            removed = [k for k in current if k not in desired]
            changed = [k for k in desired if k in current and current[k] != desired[k]]

            for pubkey in added:
                logger.info(f"'{net_id}': adding peer '{pubkey}' {desired[pubkey]}")
            for pubkey in changed:
                logger.info(f"'{net_id}': updating peer '{pubkey}' {desired[pubkey]}")
            for pubkey in removed:
                logger.info(f"'{net_id}': removing peer '{pubkey}'")

            if not (added or removed or changed):
                logger.debug(f"'{net_id}': interface already in sync")

            self._applied[net_id] = desired

    def applied_peers(self, net_id: str) -> dict[str, list[str]]:
        """Peer list last applied to an interface."""
        with self._lock:
            return dict(self._applied.get(net_id, {}))
