"""
Network Endpoints.

Handles peer registration and the approve/disapprove/activate/deactivate
lifecycle calls, plus read access to network state.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from locksmith.models.network import NetConfig, Peer
from locksmith.models.requests import (
    NetworkResponse,
    NetworkSummary,
    PeerActionRequest,
    PeerRegisterRequest,
    SyncStatusResponse,
)
from locksmith.nm.errors import (
    AddresserConfigError,
    AddressExhaustedError,
    HookRejectedError,
    NetworkManagerError,
    UnknownAddresserError,
    UnknownHookError,
    UnknownNetworkError,
    UnknownPeerError,
)
from locksmith.nm.manager import NetworkManager
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_network_manager(request: Request) -> NetworkManager:
    """Dependency returning the manager created at startup."""
    return request.app.state.network_manager


def _to_http_error(e: NetworkManagerError) -> HTTPException:
    """Map a network manager error to an HTTP error."""
    if isinstance(e, (UnknownNetworkError, UnknownPeerError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, HookRejectedError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(
        e, (UnknownAddresserError, AddresserConfigError, AddressExhaustedError)
    ):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, UnknownHookError):
        # Network lists a hook that is not installed
        logger.error(f"Network configuration error: {e}")
        return HTTPException(status_code=500, detail=str(e))
    logger.error(f"Network manager error: {e}")
    return HTTPException(status_code=500, detail=str(e))


def _summary(net: NetConfig) -> NetworkSummary:
    return NetworkSummary(
        id=net.id,
        name=net.display_name,
        approve_mode=net.approve_mode.value,
        activate_mode=net.activate_mode.value,
        approve_expiry_seconds=net.approve_expiry.total_seconds(),
        activate_expiry_seconds=net.activate_expiry.total_seconds(),
    )


# =============================================================================
# Network Queries
# =============================================================================


@router.get("/networks", response_model=list[NetworkSummary])
async def list_networks(manager: NetworkManager = Depends(get_network_manager)):
    """List configured networks."""
    return [_summary(net) for net in manager.list_networks()]


@router.get("/networks/{net_id}", response_model=NetworkResponse)
async def get_network(
    net_id: str, manager: NetworkManager = Depends(get_network_manager)
):
    """Get a network's configuration and current peer state."""
    try:
        net = await manager.get_net(net_id)
    except NetworkManagerError as e:
        raise _to_http_error(e)
    return NetworkResponse(**net.to_dict())


@router.get("/networks/{net_id}/sync", response_model=SyncStatusResponse)
async def get_sync_status(
    net_id: str, manager: NetworkManager = Depends(get_network_manager)
):
    """Get the outcome of the last interface sync for a network."""
    try:
        result = manager.sync_status(net_id)
    except NetworkManagerError as e:
        raise _to_http_error(e)
    return SyncStatusResponse(
        net_id=net_id,
        dispatched=manager.sync.dispatch_count(net_id),
        last_result=result.to_dict() if result else None,
    )


# =============================================================================
# Peer Lifecycle
# =============================================================================


@router.post("/networks/{net_id}/register", response_model=NetworkResponse)
async def register_peer(
    net_id: str,
    request: PeerRegisterRequest,
    manager: NetworkManager = Depends(get_network_manager),
):
    """
    Register a peer into a network.

    The peer is staged, and approved/activated right away when the network
    is configured to do so.
    """
    logger.info(f"Registration requested for '{request.pubkey}' on {net_id}")
    peer = Peer(pubkey=request.pubkey, info=dict(request.info))
    try:
        net = await manager.register(net_id, peer)
    except NetworkManagerError as e:
        raise _to_http_error(e)
    return NetworkResponse(**net.to_dict())


@router.post("/networks/{net_id}/approve", response_model=NetworkResponse)
async def approve_peer(
    net_id: str,
    request: PeerActionRequest,
    manager: NetworkManager = Depends(get_network_manager),
):
    """Approve a staged peer."""
    try:
        net = await manager.approve(net_id, request.pubkey)
    except NetworkManagerError as e:
        raise _to_http_error(e)
    return NetworkResponse(**net.to_dict())


@router.post("/networks/{net_id}/disapprove", response_model=NetworkResponse)
async def disapprove_peer(
    net_id: str,
    request: PeerActionRequest,
    manager: NetworkManager = Depends(get_network_manager),
):
    """Revoke a peer's approval and deactivate it."""
    try:
        net = await manager.disapprove(net_id, request.pubkey)
    except NetworkManagerError as e:
        raise _to_http_error(e)
    return NetworkResponse(**net.to_dict())


@router.post("/networks/{net_id}/activate", response_model=NetworkResponse)
async def activate_peer(
    net_id: str,
    request: PeerActionRequest,
    manager: NetworkManager = Depends(get_network_manager),
):
    """Activate an approved peer."""
    try:
        net = await manager.activate(net_id, request.pubkey)
    except NetworkManagerError as e:
        raise _to_http_error(e)
    return NetworkResponse(**net.to_dict())


@router.post("/networks/{net_id}/deactivate", response_model=NetworkResponse)
async def deactivate_peer(
    net_id: str,
    request: PeerActionRequest,
    manager: NetworkManager = Depends(get_network_manager),
):
    """Deactivate a peer. Succeeds even when the peer is not active."""
    try:
        net = await manager.deactivate(net_id, request.pubkey)
    except NetworkManagerError as e:
        raise _to_http_error(e)
    return NetworkResponse(**net.to_dict())
