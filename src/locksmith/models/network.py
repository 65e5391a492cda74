"""
Data models for overlay networks and their peers.

NetConfig is the static, read-only description of one overlay loaded from
configuration. NetState is the mutable per-overlay state that the state
store persists. Network composes the two and is rebuilt from the store on
every access; it is never persisted itself.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from locksmith.models.enums import PeerMode


# =============================================================================
# Peer
# =============================================================================


@dataclass
class Peer:
    """
    A peer identified by its public key.

    Attributes:
        pubkey: Public key, the peer's unique case-sensitive identity.
        addresses: Assigned addresses keyed by the addresser that issued them.
        info: Arbitrary descriptive metadata supplied at registration.
    """

    pubkey: str
    addresses: dict[str, str] = field(default_factory=dict)
    info: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "pubkey": self.pubkey,
            "addresses": dict(self.addresses),
            "info": dict(self.info),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Peer:
        return cls(
            pubkey=data["pubkey"],
            addresses=dict(data.get("addresses") or {}),
            info=dict(data.get("info") or {}),
        )


# =============================================================================
# Static Configuration
# =============================================================================


@dataclass(frozen=True)
class NetConfig:
    """
    Static configuration of one overlay network.

    Attributes:
        id: Globally unique identifier, also the interface name for drivers.
        name: Human readable name used in logs.
        approve_mode: Whether staged peers are approved automatically.
        activate_mode: Whether approved peers are activated automatically.
        approve_expiry: Lifetime of an approval; zero means never.
        activate_expiry: Lifetime of an activation; zero means never.
        pre_approve_hooks: Hook names run in order at registration.
        ipam: Addresser names that assign addresses to approved peers.
        address_pools: CIDR per addresser name for this network.
    """

    id: str
    name: str = ""
    approve_mode: PeerMode = PeerMode.MANUAL
    activate_mode: PeerMode = PeerMode.MANUAL
    approve_expiry: timedelta = timedelta(0)
    activate_expiry: timedelta = timedelta(0)
    pre_approve_hooks: tuple[str, ...] = ()
    ipam: tuple[str, ...] = ()
    address_pools: dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def uses_expiry(self) -> bool:
        """Check if either lifecycle step of this network expires."""
        return bool(self.approve_expiry) or bool(self.activate_expiry)


# =============================================================================
# Mutable State
# =============================================================================


@dataclass
class NetState:
    """
    Mutable, persisted state of one overlay network.

    A key may be present in more than one peer map at a time: an active
    peer is always also approved. The expiration maps only record when a
    key is due to be revisited, never peer data.
    """

    staged_peers: dict[str, Peer] = field(default_factory=dict)
    approved_peers: dict[str, Peer] = field(default_factory=dict)
    active_peers: dict[str, Peer] = field(default_factory=dict)
    approval_expirations: dict[str, datetime] = field(default_factory=dict)
    activation_expirations: dict[str, datetime] = field(default_factory=dict)

    def copy(self) -> NetState:
        """Deep copy, safe to hand to another task or thread."""
        return copy.deepcopy(self)

    def held_addresses(self) -> set[str]:
        """All addresses currently assigned to any peer of the network."""
        held = set()
        for peers in (self.staged_peers, self.approved_peers, self.active_peers):
            for peer in peers.values():
                held.update(peer.addresses.values())
        return held

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return {
            "staged_peers": {k: p.to_dict() for k, p in self.staged_peers.items()},
            "approved_peers": {
                k: p.to_dict() for k, p in self.approved_peers.items()
            },
            "active_peers": {k: p.to_dict() for k, p in self.active_peers.items()},
            "approval_expirations": {
                k: t.isoformat() for k, t in self.approval_expirations.items()
            },
            "activation_expirations": {
                k: t.isoformat() for k, t in self.activation_expirations.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> NetState:
        """Build state from a dictionary produced by to_dict()."""
        data = data or {}

        def peers(key: str) -> dict[str, Peer]:
            return {k: Peer.from_dict(v) for k, v in (data.get(key) or {}).items()}

        def times(key: str) -> dict[str, datetime]:
            return {
                k: datetime.fromisoformat(v) for k, v in (data.get(key) or {}).items()
            }

        return cls(
            staged_peers=peers("staged_peers"),
            approved_peers=peers("approved_peers"),
            active_peers=peers("active_peers"),
            approval_expirations=times("approval_expirations"),
            activation_expirations=times("activation_expirations"),
        )


# =============================================================================
# Composition
# =============================================================================


@dataclass
class Network:
    """One network's configuration together with its freshly loaded state."""

    config: NetConfig
    state: NetState

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.display_name

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.config.id,
            "name": self.config.display_name,
            "approve_mode": self.config.approve_mode.value,
            "activate_mode": self.config.activate_mode.value,
            "approve_expiry_seconds": self.config.approve_expiry.total_seconds(),
            "activate_expiry_seconds": self.config.activate_expiry.total_seconds(),
            **self.state.to_dict(),
        }
