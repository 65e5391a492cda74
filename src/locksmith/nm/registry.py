"""
Named factory registries for pluggable network manager components.

Every pluggable family (state stores, addressers, interface drivers,
pre-approve hooks) has one Registry instance. Registries are built
explicitly during startup by default_registries() and handed to the
NetworkManager; nothing registers itself at import time.

Usage:
    registries = default_registries()
    registries.drivers.register("MYDRIVER", MyDriver)
    manager = NetworkManager(config, registries)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from locksmith.nm.errors import (
    DuplicateRegistrationError,
    NetworkManagerError,
    UnknownAddresserError,
    UnknownDriverError,
    UnknownHookError,
    UnknownStoreError,
)
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Registry
# =============================================================================


class Registry(Generic[T]):
    """
    Maps unique names to factories for one component family.

    Args:
        kind: Family name used in log and error messages.
        not_found: Exception class raised with the requested name when a
            lookup misses.
    """

    def __init__(self, kind: str, not_found: Callable[[str], NetworkManagerError]):
        self.kind = kind
        self._not_found = not_found
        self._factories: dict[str, Callable[..., T]] = {}

    def register(self, name: str, factory: Callable[..., T]) -> None:
        """Register a factory; a name can only be registered once."""
        if name in self._factories:
            raise DuplicateRegistrationError(self.kind, name)
        self._factories[name] = factory
        logger.debug(f"Registered {self.kind} '{name}'")

    def get(self, name: str) -> Callable[..., T]:
        """Get the factory registered under name."""
        try:
            return self._factories[name]
        except KeyError:
            raise self._not_found(name) from None

    def create(self, name: str, *args, **kwargs) -> T:
        """Look up a factory and call it."""
        return self.get(name)(*args, **kwargs)

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories


# =============================================================================
# Registry Bundle
# =============================================================================


@dataclass
class DriverRegistries:
    """All registries the network manager selects components from."""

    stores: Registry = field(
        default_factory=lambda: Registry("state store", UnknownStoreError)
    )
    addressers: Registry = field(
        default_factory=lambda: Registry("addresser", UnknownAddresserError)
    )
    drivers: Registry = field(
        default_factory=lambda: Registry("driver", UnknownDriverError)
    )
    hooks: Registry = field(default_factory=lambda: Registry("hook", UnknownHookError))


def default_registries() -> DriverRegistries:
    """Build a registry bundle with every built-in component registered."""
    from locksmith.nm.driver.local import LocalDriver
    from locksmith.nm.hooks import require_not_approved, require_wireguard_key
    from locksmith.nm.ipam.subnet import SubnetAddresser
    from locksmith.nm.state.json_store import JSONStore
    from locksmith.nm.state.memory import MemoryStore
    from locksmith.nm.state.sqlite import SQLiteStore

    registries = DriverRegistries()

    registries.stores.register("MEMORY", MemoryStore)
    registries.stores.register("JSON", JSONStore)
    registries.stores.register("SQLITE", SQLiteStore)

    registries.addressers.register(
        "IPV4", lambda config: SubnetAddresser("IPV4", version=4)
    )
    registries.addressers.register(
        "IPV6", lambda config: SubnetAddresser("IPV6", version=6)
    )

    registries.drivers.register("LOCAL", LocalDriver)

    # Hooks are registered as the callables themselves, fetched with get().
    registries.hooks.register("WG_KEY", require_wireguard_key)
    registries.hooks.register("NOT_APPROVED", require_not_approved)

    return registries
