"""
Expiration sweep background task.

Removes approval and activation schedule entries whose time has passed.
The sweep only edits schedule bookkeeping; it never waits on interface
syncs.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from locksmith.nm.errors import NetworkManagerError
from locksmith.utils.logger import get_logger

if TYPE_CHECKING:
    from locksmith.nm.manager import NetworkManager

logger = get_logger(__name__)


# =============================================================================
# Background Task
# =============================================================================


async def expiration_timer(manager: NetworkManager) -> None:
    """
    Run the expiration sweep forever.

    Meant to be launched as a background task; it only returns when
    cancelled.
    """
    interval = manager.config.EXPIRY_INTERVAL_SECONDS
    logger.info(f"Launching expiration timer with an interval of {interval}s")

    while True:
        await asyncio.sleep(interval)

        try:
            await process_expirations(manager)
        except Exception as e:
            logger.error(f"Error processing expirations: {e}")


# =============================================================================
# Sweep
# =============================================================================


async def process_expirations(manager: NetworkManager) -> int:
    """
    Handle expiration times that have passed, for every network.

    A failure on one network is logged and does not stop the others.

    Returns:
        Number of schedule entries removed.
    """
    removed = 0
    for net_id in manager.network_ids():
        try:
            removed += await _process_network(manager, net_id)
        except NetworkManagerError as e:
            logger.error(f"Expiration sweep failed for network {net_id}: {e}")
    return removed


async def _process_network(manager: NetworkManager, net_id: str) -> int:
    """Sweep one network's schedules and store it once."""
    async with manager.lock_for(net_id):
        net = await manager.get_net(net_id)
        now = manager.now()

        expired_approvals = [
            key for key, at in net.state.approval_expirations.items() if now > at
        ]
        for key in expired_approvals:
            logger.info(f"Network '{net.name}': approval of key '{key}' has expired")
            del net.state.approval_expirations[key]

        expired_activations = [
            key for key, at in net.state.activation_expirations.items() if now > at
        ]
        for key in expired_activations:
            logger.info(f"Network '{net.name}': activation of key '{key}' has expired")
            del net.state.activation_expirations[key]

        await manager.store_net(net)

    return len(expired_approvals) + len(expired_activations)
