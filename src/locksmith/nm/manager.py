"""
Network manager for Locksmith.

Owns the configured overlay networks and moves peers through their
registration lifecycle:

    register:   (unregistered) -> staged
    approve:    staged -> approved
    activate:   approved -> approved + active
    deactivate: approved + active -> approved
    disapprove: approved (+ active) -> (unregistered)

Networks whose approve_mode is AUTO approve a peer as soon as it is staged;
networks whose activate_mode is AUTO activate a peer as soon as it is
approved. Cascaded steps run in the same critical section as the step that
triggered them.

State Management:
- The state store is the source of truth; every operation loads the
  network's state, mutates it and stores it back.
- Each network has its own asyncio.Lock. Every read-modify-write of a
  network's state, including the expiration sweep, holds that lock, so
  concurrent requests and the sweep never lose each other's writes.
- Changes to the active set are pushed to the interface driver through the
  SyncDispatcher; the request does not wait for the driver.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime

from locksmith.config import LocksmithConfig
from locksmith.models.enums import PeerMode
from locksmith.models.network import NetConfig, NetState, Network, Peer
from locksmith.nm.errors import (
    InternalError,
    NetworkManagerError,
    UnknownAddresserError,
    UnknownNetworkError,
    UnknownPeerError,
)
from locksmith.nm.expiry import expiration_timer, process_expirations
from locksmith.nm.ipam.base import Addresser
from locksmith.nm.registry import DriverRegistries
from locksmith.nm.state.base import StateStore
from locksmith.nm.sync import SyncDispatcher, SyncResult
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)


class NetworkManager:
    """
    Runs the peer lifecycle for every configured overlay network.

    Args:
        config: Service configuration; its NETWORKS are fixed for the
            lifetime of the manager.
        registries: Component registries to select the store, driver,
            addressers and hooks from.
        now: Clock used for expiration schedules.
    """

    def __init__(
        self,
        config: LocksmithConfig,
        registries: DriverRegistries,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.registries = registries
        self.now = now

        self._networks: dict[str, NetConfig] = {}
        for net in config.NETWORKS:
            if net.id in self._networks:
                raise ValueError(f"Duplicate network id in configuration: {net.id}")
            self._networks[net.id] = net

        self._locks: dict[str, asyncio.Lock] = {
            net_id: asyncio.Lock() for net_id in self._networks
        }

        # Unknown store or driver names are fatal at startup
        self.store: StateStore = registries.stores.create(config.STATE_IMPL, config)
        driver = registries.drivers.create(config.DRIVER_IMPL, config)
        self.sync = SyncDispatcher(
            driver,
            max_workers=config.SYNC_MAX_WORKERS,
            max_retries=config.SYNC_MAX_RETRIES,
            backoff_seconds=config.SYNC_RETRY_BACKOFF_SECONDS,
        )

        self.addressers: dict[str, Addresser] = {}
        self._initialize_ipam()

        self._expiry_task: asyncio.Task | None = None

        logger.info(
            f"Network manager ready: networks={list(self._networks)}, "
            f"store={config.STATE_IMPL}, driver={config.DRIVER_IMPL}, "
            f"addressers={list(self.addressers)}"
        )

    def _initialize_ipam(self) -> None:
        """Create one instance of every addresser any network requires."""
        for name in self.config.required_addressers():
            try:
                self.addressers[name] = self.registries.addressers.create(
                    name, self.config
                )
            except NetworkManagerError as e:
                # Networks needing this addresser cannot approve peers
                logger.warning(f"Addresser '{name}' is unavailable: {e}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """
        Start background work.

        If any network expires approvals or activations, expirations that
        lapsed while the process was down are processed immediately and the
        periodic sweep is launched.
        """
        if not self.config.uses_expiry():
            logger.debug("No network uses expiry, sweep not started")
            return

        await process_expirations(self)
        self._expiry_task = asyncio.create_task(
            expiration_timer(self), name="expiration_timer"
        )

    async def close(self) -> None:
        """Stop the sweep, finish pending syncs and close the store."""
        if self._expiry_task is not None:
            self._expiry_task.cancel()
            await asyncio.gather(self._expiry_task, return_exceptions=True)
            self._expiry_task = None

        await self.sync.close()
        await asyncio.to_thread(self.store.close)
        logger.info("Network manager closed")

    # =========================================================================
    # Network Access
    # =========================================================================

    def list_networks(self) -> list[NetConfig]:
        """All configured networks in configuration order."""
        return list(self._networks.values())

    def network_ids(self) -> list[str]:
        return list(self._networks)

    def lock_for(self, net_id: str) -> asyncio.Lock:
        """The lock guarding a network's state."""
        try:
            return self._locks[net_id]
        except KeyError:
            raise UnknownNetworkError(net_id) from None

    async def get_state(self, net_id: str) -> NetState:
        """Load a network's state from the store."""
        try:
            return await asyncio.to_thread(self.store.get, net_id)
        except Exception as e:
            logger.error(f"Failed to load state for network {net_id}: {e}")
            raise InternalError(f"Failed to load state for network {net_id}") from e

    async def put_state(self, net_id: str, state: NetState) -> None:
        """Persist a network's state to the store."""
        try:
            await asyncio.to_thread(self.store.put, net_id, state)
        except Exception as e:
            logger.error(f"Failed to store state for network {net_id}: {e}")
            raise InternalError(f"Failed to store state for network {net_id}") from e

    async def get_net(self, net_id: str) -> Network:
        """
        Return the network with freshly loaded state.

        Raises:
            UnknownNetworkError: If no network with that ID is configured.
        """
        config = self._networks.get(net_id)
        if config is None:
            raise UnknownNetworkError(net_id)
        return Network(config=config, state=await self.get_state(net_id))

    async def store_net(self, net: Network) -> None:
        """Convenience function that stores network state."""
        await self.put_state(net.id, net.state)

    def sync_status(self, net_id: str) -> SyncResult | None:
        """
        Result of the last interface sync for a network.

        Raises:
            UnknownNetworkError: If no network with that ID is configured.
        """
        if net_id not in self._networks:
            raise UnknownNetworkError(net_id)
        return self.sync.last_result(net_id)

    # =========================================================================
    # Peer Lifecycle (public, locking)
    # =========================================================================

    async def register(self, net_id: str, peer: Peer) -> Network:
        """
        Attempt to register a peer into a network.

        Runs the network's pre-approve hooks in order; the first rejection
        aborts the registration. Accepted peers are staged, and approved
        right away when the network approves automatically.

        Returns:
            The network as stored after the registration.

        Raises:
            UnknownNetworkError: Unknown network.
            UnknownHookError: A configured hook is not installed.
            HookRejectedError: A hook refused the peer.
        """
        async with self.lock_for(net_id):
            net = await self.get_net(net_id)

            for hook_name in net.config.pre_approve_hooks:
                hook = self.registries.hooks.get(hook_name)
                hook(net, peer)

            await self._stage_peer(net, peer)
            return net

    async def approve(self, net_id: str, pubkey: str) -> Network:
        """
        Move a staged peer to the approved set.

        Raises:
            UnknownNetworkError: Unknown network.
            UnknownPeerError: The key is not staged.
            UnknownAddresserError: A required addresser is unavailable.
        """
        async with self.lock_for(net_id):
            net = await self.get_net(net_id)
            await self._approve_peer(net, pubkey)
            return net

    async def disapprove(self, net_id: str, pubkey: str) -> Network:
        """
        Revoke a peer's approval and deactivate it.

        The peer is removed from the approved set and its approval schedule,
        and its addresses are released. Registering again restarts the
        lifecycle from staging.

        Raises:
            UnknownNetworkError: Unknown network.
            UnknownPeerError: The key is not approved.
        """
        async with self.lock_for(net_id):
            net = await self.get_net(net_id)
            await self._disapprove_peer(net, pubkey)
            return net

    async def activate(self, net_id: str, pubkey: str) -> Network:
        """
        Add an approved peer to the active set.

        Raises:
            UnknownNetworkError: Unknown network.
            UnknownPeerError: The key is not approved.
        """
        async with self.lock_for(net_id):
            net = await self.get_net(net_id)
            await self._activate_peer(net, pubkey)
            return net

    async def deactivate(self, net_id: str, pubkey: str) -> Network:
        """
        Remove a peer from the active set. Deactivating an inactive key is a
        no-op that still succeeds.

        Raises:
            UnknownNetworkError: Unknown network.
        """
        async with self.lock_for(net_id):
            net = await self.get_net(net_id)
            await self._deactivate_peer(net, pubkey)
            return net

    # =========================================================================
    # Peer Lifecycle (internal, caller holds the network lock)
    # =========================================================================

    async def _stage_peer(self, net: Network, peer: Peer) -> None:
        """Stage a peer, cascading into approval for AUTO networks."""
        net.state.staged_peers[peer.pubkey] = peer
        await self.store_net(net)
        logger.info(f"Network '{net.name}' has staged peer '{peer.pubkey}'")

        if net.config.approve_mode == PeerMode.AUTO:
            logger.info(
                f"Network '{net.name}' is automatically approving peer '{peer.pubkey}'"
            )
            await self._approve_peer(net, peer.pubkey)

    async def _approve_peer(self, net: Network, pubkey: str) -> None:
        peer = net.state.staged_peers.get(pubkey)
        if peer is None:
            raise UnknownPeerError(net.id, pubkey)

        self._configure_peer(net, peer)

        net.state.approved_peers[pubkey] = peer
        del net.state.staged_peers[pubkey]

        if net.config.approve_expiry:
            # Approvals expire for this network
            net.state.approval_expirations[pubkey] = (
                self.now() + net.config.approve_expiry
            )

        await self.store_net(net)
        logger.info(f"Network '{net.name}' has approved peer '{pubkey}'")

        if net.config.activate_mode == PeerMode.AUTO:
            logger.info(
                f"Network '{net.name}' is automatically activating peer '{pubkey}'"
            )
            await self._activate_peer(net, pubkey)

    async def _disapprove_peer(self, net: Network, pubkey: str) -> None:
        peer = net.state.approved_peers.get(pubkey)
        if peer is None:
            raise UnknownPeerError(net.id, pubkey)

        self._deconfigure_peer(net, peer)

        del net.state.approved_peers[pubkey]
        net.state.approval_expirations.pop(pubkey, None)

        await self.store_net(net)
        logger.info(f"Network '{net.name}' has disapproved peer '{pubkey}'")

        await self._deactivate_peer(net, pubkey)

    async def _activate_peer(self, net: Network, pubkey: str) -> None:
        peer = net.state.approved_peers.get(pubkey)
        if peer is None:
            raise UnknownPeerError(net.id, pubkey)

        if net.config.activate_expiry:
            # Activation expiry is active for this network
            net.state.activation_expirations[pubkey] = (
                self.now() + net.config.activate_expiry
            )

        net.state.active_peers[pubkey] = peer
        await self.store_net(net)
        logger.info(f"Network '{net.name}' has activated peer '{pubkey}'")

        self.sync.dispatch(net.id, net.state)

    async def _deactivate_peer(self, net: Network, pubkey: str) -> None:
        was_active = net.state.active_peers.pop(pubkey, None) is not None
        net.state.activation_expirations.pop(pubkey, None)

        await self.store_net(net)
        logger.info(f"Network '{net.name}' has deactivated peer '{pubkey}'")

        if was_active:
            self.sync.dispatch(net.id, net.state)

    # =========================================================================
    # Interface Configuration Callbacks
    # =========================================================================

    def _configure_peer(self, net: Network, peer: Peer) -> None:
        """
        Assign driver parameters to a peer about to be approved.

        Every addresser the network lists assigns one address. Nothing is
        written to the peer unless all of them succeed. A key that already
        holds addresses in the network keeps them.
        """
        existing = net.state.approved_peers.get(
            peer.pubkey
        ) or net.state.active_peers.get(peer.pubkey)
        if existing is not None and existing is not peer:
            for name, address in existing.addresses.items():
                peer.addresses.setdefault(name, address)

        assigned: dict[str, str] = {}
        for name in net.config.ipam:
            addresser = self.addressers.get(name)
            if addresser is None:
                raise UnknownAddresserError(name)
            assigned[name] = addresser.assign(net, peer)

        peer.addresses.update(assigned)
        if assigned:
            logger.debug(
                f"Network '{net.name}' configured peer '{peer.pubkey}': {assigned}"
            )

    def _deconfigure_peer(self, net: Network, peer: Peer) -> None:
        """Release the driver parameters assigned to a peer."""
        for name in list(peer.addresses):
            addresser = self.addressers.get(name)
            if addresser is not None:
                addresser.release(net, peer)
        peer.addresses.clear()
