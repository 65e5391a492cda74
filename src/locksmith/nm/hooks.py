"""
Built-in pre-approve hooks.

A hook is a callable taking (network, peer). It returns None to let the
registration proceed and raises HookRejectedError to refuse it. Hooks run
in the order listed by the network's pre_approve_hooks, before the peer is
staged.
"""

import base64
import binascii

from locksmith.models.network import Network, Peer
from locksmith.nm.errors import HookRejectedError

# Curve25519 public keys are 32 bytes
WIREGUARD_KEY_BYTES = 32


def require_wireguard_key(net: Network, peer: Peer) -> None:
    """Reject public keys that are not base64 encoded 32 byte keys."""
    try:
        raw = base64.b64decode(peer.pubkey, validate=True)
    except (binascii.Error, ValueError):
        raise HookRejectedError("WG_KEY", peer.pubkey, "key is not valid base64")
    if len(raw) != WIREGUARD_KEY_BYTES:
        raise HookRejectedError(
            "WG_KEY",
            peer.pubkey,
            f"key is {len(raw)} bytes, expected {WIREGUARD_KEY_BYTES}",
        )


def require_not_approved(net: Network, peer: Peer) -> None:
    """Reject registration of a key that is already approved on the network."""
    if peer.pubkey in net.state.approved_peers:
        raise HookRejectedError("NOT_APPROVED", peer.pubkey, "key is already approved")
