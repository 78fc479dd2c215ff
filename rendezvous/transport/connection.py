"""
Connection Handle

Wraps one accepted WebSocket. The handle is what the registry stores and
what the router writes to; nothing else touches the socket for writing.

Lifecycle: OPEN -> CLOSED, exactly once, irreversible. The transition is
triggered by the protocol handler when the transport closes, or by a
failed send.

Sends on one handle are serialized by a per-handle lock, so frames reach
the transport in the order senders acquired it. The lock is private to
the handle and never held together with the registry lock.
"""

import asyncio
import logging
from enum import Enum
from uuid import uuid4

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ConnectionClosedError(Exception):
    """Raised when sending on a handle that is (or just became) closed."""
    def __init__(self, conn_id: str, reason: str | None = None):
        self.conn_id = conn_id
        self.reason = reason
        message = f"Connection {conn_id} is closed"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ConnectionHandle:
    """
    A live duplex connection, identified by its connection id.

    Equality is identity: two handles are the same binding only if they
    are the same object.
    """

    def __init__(self, websocket: WebSocket, conn_id: str | None = None):
        """
        Args:
            websocket: The accepted WebSocket
            conn_id: Connection identifier (generated when omitted)
        """
        self.conn_id = conn_id or uuid4().hex
        self._websocket = websocket
        self._state = ConnectionState.OPEN
        self._send_lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == ConnectionState.OPEN

    def mark_closed(self) -> bool:
        """
        Transition to CLOSED.

        Returns:
            True if this call performed the transition, False if already closed
        """
        if self._state == ConnectionState.CLOSED:
            return False
        self._state = ConnectionState.CLOSED
        logger.debug(f"Connection {self.conn_id} closed")
        return True

    async def send(self, data: str) -> None:
        """
        Send one text frame.

        Raises:
            ConnectionClosedError: The handle is closed, or the transport
                failed (the handle is then marked closed)
        """
        if not self.is_open:
            raise ConnectionClosedError(self.conn_id)

        async with self._send_lock:
            # Re-check: the connection may have closed while we waited
            if not self.is_open:
                raise ConnectionClosedError(self.conn_id)
            try:
                await self._websocket.send_text(data)
            except Exception as e:
                self.mark_closed()
                raise ConnectionClosedError(self.conn_id, str(e)) from e

    def __repr__(self) -> str:
        return f"ConnectionHandle(conn_id={self.conn_id!r}, state={self._state.value})"
