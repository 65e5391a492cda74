"""
Pydantic models for API requests and responses.

This module defines the data transfer objects used by the Locksmith
administrative API.

Model Categories:
    - Peer Requests: Registration and lifecycle calls
    - Network Responses: Network configuration and state
    - Sync Responses: Interface sync outcome
"""

from pydantic import BaseModel, Field


# =============================================================================
# Peer Request Models
# =============================================================================


class PeerRegisterRequest(BaseModel):
    """Request body for registering a peer into a network."""

    pubkey: str = Field(..., min_length=1, description="Peer public key")
    info: dict[str, str] = Field(
        default_factory=dict,
        description="Descriptive metadata (owner, device name, ...)",
    )


class PeerActionRequest(BaseModel):
    """
    Request body for approve/disapprove/activate/deactivate.

    The key travels in the body rather than the path because base64 keys
    contain '/'.
    """

    pubkey: str = Field(..., min_length=1, description="Peer public key")


# =============================================================================
# Network Response Models
# =============================================================================


class PeerResponse(BaseModel):
    """A peer as returned by the API."""

    pubkey: str
    addresses: dict[str, str] = Field(default_factory=dict)
    info: dict[str, str] = Field(default_factory=dict)


class NetworkSummary(BaseModel):
    """Static configuration of a network."""

    id: str
    name: str
    approve_mode: str
    activate_mode: str
    approve_expiry_seconds: float
    activate_expiry_seconds: float


class NetworkResponse(NetworkSummary):
    """Network configuration together with its current state."""

    staged_peers: dict[str, PeerResponse] = Field(default_factory=dict)
    approved_peers: dict[str, PeerResponse] = Field(default_factory=dict)
    active_peers: dict[str, PeerResponse] = Field(default_factory=dict)
    approval_expirations: dict[str, str] = Field(default_factory=dict)
    activation_expirations: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Sync Response Models
# =============================================================================


class SyncStatusResponse(BaseModel):
    """Outcome of the most recent interface sync of a network."""

    net_id: str
    dispatched: int = Field(..., description="Syncs dispatched since startup")
    last_result: dict | None = Field(
        default=None, description="Most recent finished sync, if any"
    )
