"""
Subnet addresser.

Hands out host addresses from the CIDR configured for the addresser in the
network's address_pools. The first host address of the pool is reserved for
the network interface itself (the same convention as a gateway address).

Example pool 10.10.0.0/24:
- 10.10.0.1: interface, never assigned
- 10.10.0.2: first peer
- 10.10.0.3: second peer, or the first peer's address once released

Held addresses are derived from the network's state on every call, so an
address becomes free again as soon as no peer in the state carries it.
"""

from __future__ import annotations

import ipaddress

from locksmith.models.network import Network, Peer
from locksmith.nm.errors import AddresserConfigError, AddressExhaustedError
from locksmith.nm.ipam.base import Addresser
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)


class SubnetAddresser(Addresser):
    """Lowest-free-address allocator over a per-network CIDR."""

    def __init__(self, name: str, version: int = 4):
        super().__init__(name)
        self.version = version

    def _pool(self, net: Network) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
        cidr = net.config.address_pools.get(self.name)
        if not cidr:
            raise AddresserConfigError(self.name, net.id, "no address pool configured")
        try:
            pool = ipaddress.ip_network(cidr, strict=False)
        except ValueError as e:
            raise AddresserConfigError(self.name, net.id, str(e)) from e
        if pool.version != self.version:
            raise AddresserConfigError(
                self.name, net.id, f"{cidr} is not an IPv{self.version} network"
            )
        return pool

    def assign(self, net: Network, peer: Peer) -> str:
        existing = peer.addresses.get(self.name)
        if existing:
            return existing

        pool = self._pool(net)
        held = net.state.held_addresses()

        hosts = pool.hosts()
        # First host is the interface address.
        next(hosts, None)
        for candidate in hosts:
            address = f"{candidate}/{pool.max_prefixlen}"
            if address not in held:
                logger.debug(
                    f"Addresser '{self.name}' assigned {address} to '{peer.pubkey}' "
                    f"on network {net.id}"
                )
                return address

        raise AddressExhaustedError(self.name, net.id, str(pool))
