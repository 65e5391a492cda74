"""Network manager exception classes."""


class NetworkManagerError(Exception):
    """Base exception for network manager operations."""

    pass


class UnknownHookError(NetworkManagerError):
    """A hook is requested by configuration but is not installed."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No hook with that name is known: {name}")


class UnknownNetworkError(NetworkManagerError):
    """A network with an unknown ID is requested."""

    def __init__(self, net_id: str):
        self.net_id = net_id
        super().__init__(f"No network with that ID exists: {net_id}")


class UnknownPeerError(NetworkManagerError):
    """A peer is requested but is not in the required peer set."""

    def __init__(self, net_id: str, pubkey: str):
        self.net_id = net_id
        self.pubkey = pubkey
        super().__init__(f"No peer with key '{pubkey}' is known in network {net_id}")


class UnknownStoreError(NetworkManagerError):
    """The requested state store is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No store with that name is known: {name}")


class UnknownAddresserError(NetworkManagerError):
    """The requested addresser is not registered or failed to initialize."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No addresser with that name is known: {name}")


class UnknownDriverError(NetworkManagerError):
    """The requested interface driver is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No driver with that name is known: {name}")


class InternalError(NetworkManagerError):
    """Something fundamentally unexpected happened."""

    def __init__(self, message: str = "An unspecified error has occurred"):
        super().__init__(message)


class DuplicateRegistrationError(NetworkManagerError):
    """A factory name is registered twice in the same registry."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"A {kind} named '{name}' is already registered")


class HookRejectedError(NetworkManagerError):
    """A pre-approve hook refused the peer."""

    def __init__(self, hook: str, pubkey: str, reason: str):
        self.hook = hook
        self.pubkey = pubkey
        self.reason = reason
        super().__init__(f"Hook '{hook}' rejected peer '{pubkey}': {reason}")


class AddresserConfigError(NetworkManagerError):
    """An addresser has no usable pool for the network."""

    def __init__(self, addresser: str, net_id: str, message: str):
        self.addresser = addresser
        self.net_id = net_id
        super().__init__(f"Addresser '{addresser}' on network {net_id}: {message}")


class AddressExhaustedError(NetworkManagerError):
    """Every address in the pool is already held by a peer."""

    def __init__(self, addresser: str, net_id: str, pool: str):
        self.addresser = addresser
        self.net_id = net_id
        self.pool = pool
        super().__init__(
            f"Addresser '{addresser}' has no free address in {pool} for network {net_id}"
        )
