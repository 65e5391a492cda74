"""
Network manager: peer lifecycle, expiration sweep and driver registries.

Re-exports the main classes:
    from locksmith.nm import NetworkManager, default_registries
"""

from locksmith.nm.errors import (
    AddresserConfigError,
    AddressExhaustedError,
    DuplicateRegistrationError,
    HookRejectedError,
    InternalError,
    NetworkManagerError,
    UnknownAddresserError,
    UnknownDriverError,
    UnknownHookError,
    UnknownNetworkError,
    UnknownPeerError,
    UnknownStoreError,
)
from locksmith.nm.manager import NetworkManager
from locksmith.nm.registry import DriverRegistries, Registry, default_registries
from locksmith.nm.sync import SyncDispatcher, SyncResult

__all__ = [
    # Manager
    "NetworkManager",
    # Registries
    "DriverRegistries",
    "Registry",
    "default_registries",
    # Sync
    "SyncDispatcher",
    "SyncResult",
    # Exceptions
    "NetworkManagerError",
    "UnknownHookError",
    "UnknownNetworkError",
    "UnknownPeerError",
    "UnknownStoreError",
    "UnknownAddresserError",
    "UnknownDriverError",
    "InternalError",
    "DuplicateRegistrationError",
    "HookRejectedError",
    "AddresserConfigError",
    "AddressExhaustedError",
]
