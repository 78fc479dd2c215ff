"""
Connection Registry

In-memory map from agent identifier to the connection currently bound to
it. This is the only state shared between connection tasks.

Invariants:
- At most one entry per agent id
- Entries never point at a closed handle once the close is known;
  lookup prunes any it finds

Thread-safe for async operations: every operation runs under a single
asyncio lock and none of them awaits I/O while holding it. Sending on a
handle happens after lookup returns, outside the lock.

Why unbind_if_current?
A client that reconnects gets a new handle and re-registers before the
old socket's close is noticed. The old connection's cleanup must not
erase the new binding, so close-path removal is conditional on the entry
still pointing at the closing handle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rendezvous.transport.connection import ConnectionHandle

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Maps agent ids to live connection handles.

    Created once at application startup and injected into every
    connection handler.
    """

    def __init__(self):
        self._bindings: dict[str, ConnectionHandle] = {}
        self._lock = asyncio.Lock()

    async def bind(self, agent_id: str, handle: ConnectionHandle) -> ConnectionHandle | None:
        """
        Bind an agent id to a handle, replacing any existing binding.

        The replaced handle is not closed; it simply stops being routable.

        Args:
            agent_id: Agent identifier
            handle: Connection to bind

        Returns:
            The superseded handle, or None if there was none (or it was
            this same handle)
        """
        async with self._lock:
            previous = self._bindings.get(agent_id)
            self._bindings[agent_id] = handle

        if previous is not None and previous is not handle:
            logger.info(
                f"Agent {agent_id} rebound: {previous.conn_id} -> {handle.conn_id}"
            )
            return previous
        return None

    async def lookup(self, agent_id: str) -> ConnectionHandle | None:
        """
        Get the live handle bound to an agent id.

        A bound handle that is already closed is removed and not returned.
        Callers must still treat sends as fallible: the connection may close
        between lookup and send.
        """
        async with self._lock:
            handle = self._bindings.get(agent_id)
            if handle is None:
                return None
            if not handle.is_open:
                del self._bindings[agent_id]
                logger.debug(f"Pruned closed binding for {agent_id} ({handle.conn_id})")
                return None
            return handle

    async def unbind(self, agent_id: str) -> bool:
        """
        Remove the binding for an agent id, whatever it points at.

        Returns:
            True if a binding was removed
        """
        async with self._lock:
            return self._bindings.pop(agent_id, None) is not None

    async def unbind_if_current(self, agent_id: str, handle: ConnectionHandle) -> bool:
        """
        Remove the binding only if it still points at exactly this handle.

        Returns:
            True if removed, False if absent or bound to another handle
        """
        async with self._lock:
            if self._bindings.get(agent_id) is not handle:
                return False
            del self._bindings[agent_id]
            return True

    async def is_bound(self, agent_id: str) -> bool:
        return await self.lookup(agent_id) is not None

    async def snapshot(self) -> dict[str, str]:
        """Agent id -> connection id for all live bindings."""
        async with self._lock:
            return {
                agent_id: handle.conn_id
                for agent_id, handle in self._bindings.items()
                if handle.is_open
            }

    @property
    def count(self) -> int:
        """Number of bindings to open handles."""
        return sum(1 for handle in self._bindings.values() if handle.is_open)
