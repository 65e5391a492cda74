"""Tests for the network manager peer lifecycle."""

import asyncio
from datetime import timedelta

import pytest

from locksmith.models.enums import PeerMode
from locksmith.models.network import Peer
from locksmith.nm.errors import (
    HookRejectedError,
    InternalError,
    UnknownAddresserError,
    UnknownDriverError,
    UnknownHookError,
    UnknownNetworkError,
    UnknownPeerError,
    UnknownStoreError,
)
from locksmith.nm.manager import NetworkManager
from locksmith.nm.state.memory import MemoryStore

from conftest import make_key, make_net


# =============================================================================
# Registration and Approval Policy
# =============================================================================


@pytest.mark.asyncio
async def test_auto_approve_moves_peer_to_approved(make_manager):
    manager = make_manager(make_net("net", approve=PeerMode.AUTO))

    await manager.register("net", Peer(pubkey="pk1"))

    net = await manager.get_net("net")
    assert "pk1" in net.state.approved_peers
    assert "pk1" not in net.state.staged_peers
    assert net.state.active_peers == {}


@pytest.mark.asyncio
async def test_manual_approve_only_stages(make_manager):
    manager = make_manager(make_net("net"))

    await manager.register("net", Peer(pubkey="pk1", info={"owner": "alice"}))

    net = await manager.get_net("net")
    assert list(net.state.staged_peers) == ["pk1"]
    assert net.state.staged_peers["pk1"].info == {"owner": "alice"}
    assert net.state.approved_peers == {}
    assert net.state.active_peers == {}


@pytest.mark.asyncio
async def test_office_scenario_manual_approve_auto_activate(make_manager, driver):
    manager = make_manager(make_net("office", activate=PeerMode.AUTO))

    await manager.register("office", Peer(pubkey="pk1"))
    net = await manager.get_net("office")
    assert set(net.state.staged_peers) == {"pk1"}
    assert net.state.approved_peers == {}
    assert net.state.active_peers == {}

    await manager.approve("office", "pk1")
    net = await manager.get_net("office")
    assert net.state.staged_peers == {}
    assert set(net.state.approved_peers) == {"pk1"}
    assert set(net.state.active_peers) == {"pk1"}

    await manager.sync.drain()
    assert manager.sync.dispatch_count("office") == 1
    assert len(driver.calls_for("office")) == 1
    assert set(driver.calls_for("office")[0].active_peers) == {"pk1"}


@pytest.mark.asyncio
async def test_full_auto_register_activates(make_manager, driver):
    manager = make_manager(
        make_net("net", approve=PeerMode.AUTO, activate=PeerMode.AUTO)
    )

    await manager.register("net", Peer(pubkey="pk1"))
    await manager.sync.drain()

    net = await manager.get_net("net")
    assert set(net.state.approved_peers) == {"pk1"}
    assert set(net.state.active_peers) == {"pk1"}
    assert manager.sync.last_result("net").ok


@pytest.mark.asyncio
async def test_register_returns_stored_network(make_manager):
    manager = make_manager(make_net("net", approve=PeerMode.AUTO))

    net = await manager.register("net", Peer(pubkey="pk1"))

    assert net.id == "net"
    assert "pk1" in net.state.approved_peers


# =============================================================================
# Not-Found Conditions
# =============================================================================


@pytest.mark.asyncio
async def test_approve_unknown_peer(make_manager):
    manager = make_manager(make_net("net"))

    with pytest.raises(UnknownPeerError):
        await manager.approve("net", "missing")


@pytest.mark.asyncio
async def test_approve_already_approved_peer_is_not_found(make_manager):
    manager = make_manager(make_net("net", approve=PeerMode.AUTO))
    await manager.register("net", Peer(pubkey="pk1"))

    with pytest.raises(UnknownPeerError):
        await manager.approve("net", "pk1")


@pytest.mark.asyncio
async def test_activate_requires_approval(make_manager):
    manager = make_manager(make_net("net"))
    await manager.register("net", Peer(pubkey="pk1"))

    with pytest.raises(UnknownPeerError):
        await manager.activate("net", "pk1")


@pytest.mark.asyncio
async def test_disapprove_requires_approval(make_manager):
    manager = make_manager(make_net("net"))
    await manager.register("net", Peer(pubkey="pk1"))

    with pytest.raises(UnknownPeerError):
        await manager.disapprove("net", "pk1")


@pytest.mark.asyncio
async def test_unknown_network_lookup(make_manager):
    manager = make_manager(make_net("net"))

    with pytest.raises(UnknownNetworkError) as exc_info:
        await manager.get_net("nope")
    assert not isinstance(exc_info.value, InternalError)


@pytest.mark.asyncio
async def test_lifecycle_calls_on_unknown_network(make_manager):
    manager = make_manager(make_net("net"))

    with pytest.raises(UnknownNetworkError):
        await manager.register("nope", Peer(pubkey="pk1"))
    with pytest.raises(UnknownNetworkError):
        await manager.deactivate("nope", "pk1")
    with pytest.raises(UnknownNetworkError):
        manager.sync_status("nope")


@pytest.mark.asyncio
async def test_public_keys_are_case_sensitive(make_manager):
    manager = make_manager(make_net("net"))
    await manager.register("net", Peer(pubkey="AbC"))

    with pytest.raises(UnknownPeerError):
        await manager.approve("net", "abc")


# =============================================================================
# Activation and Deactivation
# =============================================================================


@pytest.mark.asyncio
async def test_manual_activation(make_manager, driver):
    manager = make_manager(make_net("net", approve=PeerMode.AUTO))
    await manager.register("net", Peer(pubkey="pk1"))
    assert manager.sync.dispatch_count("net") == 0

    await manager.activate("net", "pk1")
    await manager.sync.drain()

    net = await manager.get_net("net")
    assert set(net.state.active_peers) == {"pk1"}
    # Activation keeps the peer approved
    assert set(net.state.approved_peers) == {"pk1"}
    assert manager.sync.dispatch_count("net") == 1


@pytest.mark.asyncio
async def test_deactivate_is_idempotent(make_manager):
    manager = make_manager(
        make_net("net", approve=PeerMode.AUTO, activate=PeerMode.AUTO)
    )
    await manager.register("net", Peer(pubkey="pk1"))

    await manager.deactivate("net", "pk1")
    net = await manager.get_net("net")
    assert "pk1" not in net.state.active_peers

    await manager.deactivate("net", "pk1")
    net = await manager.get_net("net")
    assert "pk1" not in net.state.active_peers
    assert "pk1" in net.state.approved_peers


@pytest.mark.asyncio
async def test_deactivate_syncs_only_on_change(make_manager):
    manager = make_manager(
        make_net("net", approve=PeerMode.AUTO, activate=PeerMode.AUTO)
    )
    await manager.register("net", Peer(pubkey="pk1"))
    assert manager.sync.dispatch_count("net") == 1

    await manager.deactivate("net", "pk1")
    assert manager.sync.dispatch_count("net") == 2

    await manager.deactivate("net", "pk1")
    await manager.deactivate("net", "never-registered")
    assert manager.sync.dispatch_count("net") == 2
    await manager.sync.drain()


@pytest.mark.asyncio
async def test_deactivate_clears_activation_schedule(make_manager):
    manager = make_manager(
        make_net(
            "net",
            approve=PeerMode.AUTO,
            activate=PeerMode.AUTO,
            activate_expiry=timedelta(hours=1),
        )
    )
    await manager.register("net", Peer(pubkey="pk1"))
    net = await manager.get_net("net")
    assert "pk1" in net.state.activation_expirations

    await manager.deactivate("net", "pk1")
    net = await manager.get_net("net")
    assert net.state.activation_expirations == {}
    await manager.sync.drain()


# =============================================================================
# Disapproval
# =============================================================================


@pytest.mark.asyncio
async def test_disapprove_revokes_and_deactivates(make_manager, driver):
    manager = make_manager(
        make_net(
            "net",
            approve=PeerMode.AUTO,
            activate=PeerMode.AUTO,
            approve_expiry=timedelta(days=1),
            ipam=("IPV4",),
            address_pools={"IPV4": "10.0.0.0/24"},
        )
    )
    await manager.register("net", Peer(pubkey="pk1"))

    await manager.disapprove("net", "pk1")
    await manager.sync.drain()

    net = await manager.get_net("net")
    assert net.state.approved_peers == {}
    assert net.state.active_peers == {}
    assert net.state.approval_expirations == {}
    assert net.state.held_addresses() == set()
    assert manager.sync.dispatch_count("net") == 2
    assert driver.calls[-1][1].active_peers == {}


@pytest.mark.asyncio
async def test_disapprove_inactive_peer_does_not_sync(make_manager):
    manager = make_manager(make_net("net", approve=PeerMode.AUTO))
    await manager.register("net", Peer(pubkey="pk1"))

    await manager.disapprove("net", "pk1")

    net = await manager.get_net("net")
    assert net.state.approved_peers == {}
    assert manager.sync.dispatch_count("net") == 0


@pytest.mark.asyncio
async def test_reregister_after_disapprove(make_manager):
    manager = make_manager(make_net("net"))
    await manager.register("net", Peer(pubkey="pk1"))
    await manager.approve("net", "pk1")
    await manager.disapprove("net", "pk1")

    await manager.register("net", Peer(pubkey="pk1"))

    net = await manager.get_net("net")
    assert set(net.state.staged_peers) == {"pk1"}
    assert net.state.approved_peers == {}


# =============================================================================
# Expiration Schedules
# =============================================================================


@pytest.mark.asyncio
async def test_zero_approve_expiry_never_schedules(make_manager):
    manager = make_manager(make_net("net", approve=PeerMode.AUTO))

    for n in range(10):
        await manager.register("net", Peer(pubkey=f"pk{n}"))

    net = await manager.get_net("net")
    assert len(net.state.approved_peers) == 10
    assert net.state.approval_expirations == {}


@pytest.mark.asyncio
async def test_expiry_schedules_use_clock(make_manager, clock):
    manager = make_manager(
        make_net(
            "net",
            approve=PeerMode.AUTO,
            activate=PeerMode.AUTO,
            approve_expiry=timedelta(days=30),
            activate_expiry=timedelta(hours=8),
        )
    )

    await manager.register("net", Peer(pubkey="pk1"))
    await manager.sync.drain()

    net = await manager.get_net("net")
    assert net.state.approval_expirations["pk1"] == clock.current + timedelta(days=30)
    assert net.state.activation_expirations["pk1"] == clock.current + timedelta(
        hours=8
    )


# =============================================================================
# Pre-Approve Hooks
# =============================================================================


@pytest.mark.asyncio
async def test_rejecting_hook_aborts_registration(make_manager):
    manager = make_manager(make_net("net", pre_approve_hooks=("WG_KEY",)))

    with pytest.raises(HookRejectedError):
        await manager.register("net", Peer(pubkey="not a key"))

    net = await manager.get_net("net")
    assert net.state.staged_peers == {}


@pytest.mark.asyncio
async def test_accepting_hook_lets_registration_through(make_manager):
    manager = make_manager(make_net("net", pre_approve_hooks=("WG_KEY",)))
    key = make_key(1)

    await manager.register("net", Peer(pubkey=key))

    net = await manager.get_net("net")
    assert key in net.state.staged_peers


@pytest.mark.asyncio
async def test_hooks_run_in_order_and_stop_at_first_rejection(
    make_manager, registries
):
    seen = []

    def first(net, peer):
        seen.append("first")
        raise HookRejectedError("FIRST", peer.pubkey, "no")

    def second(net, peer):
        seen.append("second")

    registries.hooks.register("FIRST", first)
    registries.hooks.register("SECOND", second)
    manager = make_manager(make_net("net", pre_approve_hooks=("FIRST", "SECOND")))

    with pytest.raises(HookRejectedError):
        await manager.register("net", Peer(pubkey="pk1"))
    assert seen == ["first"]


@pytest.mark.asyncio
async def test_unknown_hook(make_manager):
    manager = make_manager(make_net("net", pre_approve_hooks=("MISSING",)))

    with pytest.raises(UnknownHookError):
        await manager.register("net", Peer(pubkey="pk1"))


@pytest.mark.asyncio
async def test_not_approved_hook_blocks_reregistration(make_manager):
    manager = make_manager(
        make_net("net", approve=PeerMode.AUTO, pre_approve_hooks=("NOT_APPROVED",))
    )
    await manager.register("net", Peer(pubkey="pk1"))

    with pytest.raises(HookRejectedError):
        await manager.register("net", Peer(pubkey="pk1"))


# =============================================================================
# Address Assignment
# =============================================================================


@pytest.mark.asyncio
async def test_approval_assigns_addresses(make_manager):
    manager = make_manager(
        make_net(
            "net",
            approve=PeerMode.AUTO,
            ipam=("IPV4", "IPV6"),
            address_pools={"IPV4": "10.1.0.0/24", "IPV6": "fd00:1::/64"},
        )
    )

    await manager.register("net", Peer(pubkey="pk1"))
    await manager.register("net", Peer(pubkey="pk2"))

    net = await manager.get_net("net")
    assert net.state.approved_peers["pk1"].addresses == {
        "IPV4": "10.1.0.2/32",
        "IPV6": "fd00:1::2/128",
    }
    assert net.state.approved_peers["pk2"].addresses["IPV4"] == "10.1.0.3/32"


@pytest.mark.asyncio
async def test_reregistered_key_keeps_its_address(make_manager):
    manager = make_manager(
        make_net(
            "net",
            approve=PeerMode.AUTO,
            ipam=("IPV4",),
            address_pools={"IPV4": "10.1.0.0/24"},
        )
    )
    await manager.register("net", Peer(pubkey="pk1"))
    await manager.activate("net", "pk1")

    await manager.register("net", Peer(pubkey="pk1"))
    await manager.sync.drain()

    net = await manager.get_net("net")
    assert net.state.approved_peers["pk1"].addresses == {"IPV4": "10.1.0.2/32"}
    assert net.state.active_peers["pk1"].addresses == {"IPV4": "10.1.0.2/32"}
    assert net.state.held_addresses() == {"10.1.0.2/32"}


@pytest.mark.asyncio
async def test_manual_reapproval_keeps_active_address(make_manager):
    manager = make_manager(
        make_net("net", ipam=("IPV4",), address_pools={"IPV4": "10.1.0.0/24"})
    )
    await manager.register("net", Peer(pubkey="pk1"))
    await manager.approve("net", "pk1")
    await manager.activate("net", "pk1")

    await manager.register("net", Peer(pubkey="pk1"))
    await manager.approve("net", "pk1")
    await manager.sync.drain()

    net = await manager.get_net("net")
    assert net.state.approved_peers["pk1"].addresses == {"IPV4": "10.1.0.2/32"}
    assert net.state.active_peers["pk1"].addresses == {"IPV4": "10.1.0.2/32"}


@pytest.mark.asyncio
async def test_missing_addresser_degrades_network(make_manager):
    manager = make_manager(
        make_net("net", approve=PeerMode.AUTO, ipam=("NOPE",)),
        make_net("other", approve=PeerMode.AUTO),
    )
    assert "NOPE" not in manager.addressers

    with pytest.raises(UnknownAddresserError):
        await manager.register("net", Peer(pubkey="pk1"))

    # Staging happened; approval could not
    net = await manager.get_net("net")
    assert set(net.state.staged_peers) == {"pk1"}
    assert net.state.approved_peers == {}

    # Other networks are unaffected
    await manager.register("other", Peer(pubkey="pk1"))
    other = await manager.get_net("other")
    assert "pk1" in other.state.approved_peers


# =============================================================================
# Concurrency
# =============================================================================


@pytest.mark.asyncio
async def test_concurrent_registrations_are_not_lost(make_manager):
    manager = make_manager(
        make_net(
            "net",
            approve=PeerMode.AUTO,
            activate=PeerMode.AUTO,
            ipam=("IPV4",),
            address_pools={"IPV4": "10.2.0.0/24"},
        )
    )

    await asyncio.gather(
        *(manager.register("net", Peer(pubkey=f"pk{n}")) for n in range(25))
    )
    await manager.sync.drain()

    net = await manager.get_net("net")
    assert len(net.state.approved_peers) == 25
    assert len(net.state.active_peers) == 25
    addresses = [p.addresses["IPV4"] for p in net.state.approved_peers.values()]
    assert len(set(addresses)) == 25


@pytest.mark.asyncio
async def test_networks_are_independent(make_manager):
    manager = make_manager(
        make_net("a", approve=PeerMode.AUTO),
        make_net("b"),
    )

    await manager.register("a", Peer(pubkey="pk1"))
    await manager.register("b", Peer(pubkey="pk1"))

    a = await manager.get_net("a")
    b = await manager.get_net("b")
    assert set(a.state.approved_peers) == {"pk1"}
    assert set(b.state.staged_peers) == {"pk1"}
    assert b.state.approved_peers == {}


# =============================================================================
# Construction and Failures
# =============================================================================


def test_unknown_store(make_manager):
    with pytest.raises(UnknownStoreError):
        make_manager(make_net("net"), STATE_IMPL="REDIS")


def test_unknown_driver(make_manager):
    with pytest.raises(UnknownDriverError):
        make_manager(make_net("net"), DRIVER_IMPL="PIGEON")


def test_duplicate_network_ids(make_manager):
    with pytest.raises(ValueError):
        make_manager(make_net("net"), make_net("net"))


def test_list_networks_keeps_configuration_order(make_manager):
    manager = make_manager(make_net("b"), make_net("a"), make_net("c"))

    assert [net.id for net in manager.list_networks()] == ["b", "a", "c"]


class BrokenStore(MemoryStore):
    def put(self, net_id, state):
        raise OSError("disk full")


@pytest.mark.asyncio
async def test_store_failure_is_internal_error(make_manager, registries):
    registries.stores.register("BROKEN", BrokenStore)
    manager = make_manager(make_net("net"), STATE_IMPL="BROKEN")

    with pytest.raises(InternalError):
        await manager.register("net", Peer(pubkey="pk1"))


@pytest.mark.asyncio
async def test_start_without_expiry_does_not_launch_sweep(make_manager):
    manager = make_manager(make_net("net"))

    await manager.start()
    assert manager._expiry_task is None
    await manager.close()


@pytest.mark.asyncio
async def test_start_and_close_with_expiry(make_manager):
    manager = make_manager(make_net("net", approve_expiry=timedelta(hours=1)))

    await manager.start()
    assert manager._expiry_task is not None
    assert not manager._expiry_task.done()

    await manager.close()
    assert manager._expiry_task is None


def test_manager_is_exported():
    from locksmith.nm import NetworkManager as Exported

    assert Exported is NetworkManager
