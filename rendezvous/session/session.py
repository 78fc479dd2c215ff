"""
Connection Session

Per-connection record of which agent id (if any) the connection owns.
The protocol handler owns its session exclusively; the session is the
only thing that binds or releases registry entries for its connection.

Session Lifecycle:
1. CONNECTED - Accepted, no identity bound
2. REGISTERED - An agent id is bound to this connection
3. CLOSED - Transport closed, binding released (terminal)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rendezvous.registry import ConnectionRegistry
    from rendezvous.transport.connection import ConnectionHandle

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CONNECTED = "connected"
    REGISTERED = "registered"
    CLOSED = "closed"


class Session:
    """
    Tracks the agent id owned by one connection.
    """

    def __init__(self, handle: ConnectionHandle, registry: ConnectionRegistry):
        self._handle = handle
        self._registry = registry
        self._current_id: str | None = None
        self._state = SessionState.CONNECTED

    @property
    def handle(self) -> ConnectionHandle:
        return self._handle

    @property
    def current_id(self) -> str | None:
        return self._current_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_registered(self) -> bool:
        return self._state == SessionState.REGISTERED

    async def on_register(self, agent_id: str) -> ConnectionHandle | None:
        """
        Bind this connection to an agent id.

        Switching ids on the same connection releases the old id first, but
        only if it still points here. Re-registering the current id rebinds
        the same handle (idempotent refresh).

        Args:
            agent_id: The identifier presented by the client

        Returns:
            The handle of another connection this registration superseded,
            or None
        """
        if self._state == SessionState.CLOSED:
            raise RuntimeError(f"Session for {self._handle.conn_id} is closed")

        old_id = self._current_id
        if old_id is not None and old_id != agent_id:
            await self._registry.unbind_if_current(old_id, self._handle)
            logger.info(f"Connection {self._handle.conn_id} released {old_id}")

        self._current_id = agent_id
        self._state = SessionState.REGISTERED
        return await self._registry.bind(agent_id, self._handle)

    async def on_close(self) -> bool:
        """
        Release this connection's binding. Runs at most once.

        Returns:
            True if a registry entry was removed. False when the connection
            never registered, was superseded by a newer registration, or
            the session was already closed.
        """
        if self._state == SessionState.CLOSED:
            return False
        self._state = SessionState.CLOSED

        if self._current_id is None:
            return False

        released = await self._registry.unbind_if_current(self._current_id, self._handle)
        if not released:
            logger.info(
                f"Connection {self._handle.conn_id} closed; {self._current_id} "
                f"already bound elsewhere"
            )
        return released
