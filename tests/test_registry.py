"""Tests for the connection registry."""

import asyncio
import random

import pytest

from rendezvous.registry import ConnectionRegistry
from rendezvous.transport.connection import ConnectionHandle

from tests.conftest import make_handle


@pytest.mark.asyncio
class TestBindLookup:
    async def test_lookup_unknown_returns_none(self, registry: ConnectionRegistry) -> None:
        assert await registry.lookup("nobody") is None

    async def test_bind_then_lookup(self, registry: ConnectionRegistry) -> None:
        handle = make_handle()
        assert await registry.bind("alice", handle) is None
        assert await registry.lookup("alice") is handle
        assert registry.count == 1

    async def test_rebind_supersedes_without_closing(self, registry: ConnectionRegistry) -> None:
        old, new = make_handle(), make_handle()
        await registry.bind("alice", old)

        superseded = await registry.bind("alice", new)

        assert superseded is old
        assert old.is_open
        assert await registry.lookup("alice") is new
        assert registry.count == 1

    async def test_rebind_same_handle_is_idempotent(self, registry: ConnectionRegistry) -> None:
        handle = make_handle()
        await registry.bind("alice", handle)
        assert await registry.bind("alice", handle) is None
        assert await registry.snapshot() == {"alice": handle.conn_id}

    async def test_lookup_never_returns_closed_handle(self, registry: ConnectionRegistry) -> None:
        handle = make_handle()
        await registry.bind("alice", handle)
        handle.mark_closed()

        assert await registry.lookup("alice") is None
        # The stale entry was pruned
        assert registry.count == 0

    async def test_snapshot_skips_closed(self, registry: ConnectionRegistry) -> None:
        a, b = make_handle(), make_handle()
        await registry.bind("a", a)
        await registry.bind("b", b)
        b.mark_closed()
        assert await registry.snapshot() == {"a": a.conn_id}

    async def test_is_bound(self, registry: ConnectionRegistry) -> None:
        await registry.bind("alice", make_handle())
        assert await registry.is_bound("alice")
        assert not await registry.is_bound("bob")

    async def test_count_ignores_closed_handles(self, registry: ConnectionRegistry) -> None:
        live, dead = make_handle(), make_handle()
        await registry.bind("alice", live)
        await registry.bind("bob", dead)
        dead.mark_closed()

        assert registry.count == 1


@pytest.mark.asyncio
class TestUnbind:
    async def test_unbind_absent_is_noop(self, registry: ConnectionRegistry) -> None:
        assert await registry.unbind("nobody") is False

    async def test_unbind_removes(self, registry: ConnectionRegistry) -> None:
        await registry.bind("alice", make_handle())
        assert await registry.unbind("alice") is True
        assert await registry.lookup("alice") is None

    async def test_unbind_if_current_matching(self, registry: ConnectionRegistry) -> None:
        handle = make_handle()
        await registry.bind("alice", handle)
        assert await registry.unbind_if_current("alice", handle) is True
        assert registry.count == 0

    async def test_unbind_if_current_ignores_other_handle(self, registry: ConnectionRegistry) -> None:
        old, new = make_handle(), make_handle()
        await registry.bind("alice", old)
        await registry.bind("alice", new)

        # The superseded connection closing must not evict the new binding
        assert await registry.unbind_if_current("alice", old) is False
        assert await registry.lookup("alice") is new

    async def test_unbind_if_current_absent(self, registry: ConnectionRegistry) -> None:
        assert await registry.unbind_if_current("alice", make_handle()) is False


@pytest.mark.asyncio
async def test_concurrent_bind_and_conditional_unbind_keep_invariants(
    registry: ConnectionRegistry,
) -> None:
    """Interleaved reconnects and closes never leave closed or duplicate bindings."""
    rng = random.Random(1234)
    agent_ids = [f"agent-{i}" for i in range(5)]

    async def connection_lifetime(agent_id: str) -> None:
        handle = make_handle()
        await registry.bind(agent_id, handle)
        await asyncio.sleep(rng.random() / 1000)
        # Close: transport first, then conditional cleanup
        handle.mark_closed()
        await asyncio.sleep(0)
        await registry.unbind_if_current(agent_id, handle)

    async def observer() -> None:
        for _ in range(200):
            snapshot = await registry.snapshot()
            # Each connection registers one id, so no handle appears twice
            assert len(set(snapshot.values())) == len(snapshot)
            for agent_id in agent_ids:
                found = await registry.lookup(agent_id)
                assert found is None or found.is_open
            await asyncio.sleep(0)

    tasks = [connection_lifetime(rng.choice(agent_ids)) for _ in range(200)]
    await asyncio.gather(observer(), *tasks)

    # Every connection closed, so nothing may remain bound
    for agent_id in agent_ids:
        assert await registry.lookup(agent_id) is None
    assert await registry.snapshot() == {}


@pytest.mark.asyncio
async def test_latest_live_registration_survives_stale_closes(registry: ConnectionRegistry) -> None:
    handles: list[ConnectionHandle] = [make_handle() for _ in range(10)]
    for handle in handles:
        await registry.bind("alice", handle)

    # All but the newest close, in arbitrary order
    stale = handles[:-1]
    random.Random(7).shuffle(stale)
    await asyncio.gather(*(registry.unbind_if_current("alice", h) for h in stale))

    assert await registry.lookup("alice") is handles[-1]
