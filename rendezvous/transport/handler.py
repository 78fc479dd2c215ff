"""
WebSocket Handler

The per-connection message loop of the relay.
Every client connection runs `handle_connection` in its own task.

Supported message types:
- register -> registered
- signal -> forwarded to the target as signal, or error to the sender
- ping -> pong

Connection lifecycle:
1. Accept, send `connected` with the connection id
2. Read frames until the transport closes; malformed frames are logged
   and skipped, never fatal
3. On close, mark the handle closed and release the session's binding
   before the task exits

The `from` of a forwarded signal is always the sender's registered agent
id. A `from` supplied in the client's frame is ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect

from rendezvous.protocol.messages import (
    ErrorCode,
    MessageDecodeError,
    MessageType,
    OutboundMessage,
    PingMessage,
    RegisterMessage,
    SignalMessage,
    create_connected,
    create_error,
    create_pong,
    create_registered,
    decode_message,
    encode_message,
)
from rendezvous.registry import ConnectionRegistry
from rendezvous.routing import SignalRouter
from rendezvous.session import Session
from rendezvous.storage import ProfileStore, StorageError
from rendezvous.transport.connection import ConnectionClosedError, ConnectionHandle

logger = logging.getLogger(__name__)


class SignalingHandler:
    """
    Handles relay WebSocket connections.

    One instance serves every connection; per-connection state lives in
    the ConnectionHandle and Session created for each accepted socket.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        router: SignalRouter | None = None,
        profiles: ProfileStore | None = None,
    ):
        """
        Initialize the handler.

        Args:
            registry: Shared connection registry
            router: Signal router (defaults to one over `registry`)
            profiles: Optional profile store for online/offline bookkeeping
        """
        self._registry = registry
        self._router = router or SignalRouter(registry)
        self._profiles = profiles

        # Open handles, for status reporting only
        self._connections: set[ConnectionHandle] = set()

        self._handlers: dict[
            MessageType,
            Callable[[ConnectionHandle, Session, Any], Awaitable[None]]
        ] = {
            MessageType.REGISTER: self._handle_register,
            MessageType.SIGNAL: self._handle_signal,
            MessageType.PING: self._handle_ping,
        }

    @property
    def connection_count(self) -> int:
        """Number of open WebSocket connections, registered or not."""
        return len(self._connections)

    async def handle_connection(self, websocket: WebSocket) -> None:
        """
        Handle a WebSocket connection lifecycle.

        Args:
            websocket: The WebSocket connection (not yet accepted)
        """
        await websocket.accept()

        handle = ConnectionHandle(websocket)
        session = Session(handle, self._registry)
        self._connections.add(handle)
        logger.info(f"WebSocket connected: {handle.conn_id}")

        try:
            await self._reply(handle, create_connected(handle.conn_id))

            while True:
                frame = await self._receive_frame(websocket)
                if frame is None:
                    break

                try:
                    message = decode_message(frame)
                except MessageDecodeError as e:
                    logger.warning(f"Ignoring malformed frame on {handle.conn_id}: {e}")
                    continue

                await self._handle_message(handle, session, message)

        except WebSocketDisconnect:
            pass

        except Exception as e:
            logger.error(f"WebSocket error on {handle.conn_id}: {e}")

        finally:
            await self._cleanup_connection(handle, session)

    async def _receive_frame(self, websocket: WebSocket) -> str | bytes | None:
        """
        Receive one frame.

        Returns:
            Frame text or bytes, or None once the peer disconnected
        """
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return None

        text = message.get("text")
        if text is not None:
            return text
        data = message.get("bytes")
        return data if data is not None else ""

    async def _reply(self, handle: ConnectionHandle, message: OutboundMessage) -> bool:
        """Send a message back on the connection it concerns."""
        try:
            await handle.send(encode_message(message))
            return True
        except ConnectionClosedError as e:
            logger.debug(f"Reply dropped: {e}")
            return False

    async def _handle_message(
        self,
        handle: ConnectionHandle,
        session: Session,
        message: RegisterMessage | SignalMessage | PingMessage
    ) -> None:
        """Dispatch a decoded message to its handler."""
        handler = self._handlers.get(MessageType(message.type))
        if handler is None:
            logger.warning(f"Unsupported message type on {handle.conn_id}: {message.type}")
            return
        await handler(handle, session, message)

    async def _handle_register(
        self,
        handle: ConnectionHandle,
        session: Session,
        message: RegisterMessage
    ) -> None:
        """
        Handle register.

        Binds the agent id to this connection, superseding any other
        connection bound to it, and confirms with `registered`.
        """
        agent_id = message.agent_id

        superseded = await session.on_register(agent_id)
        if superseded is not None:
            logger.info(f"Agent {agent_id} moved from {superseded.conn_id} to {handle.conn_id}")

        await self._update_presence(agent_id, True, message.connection_info)
        await self._reply(handle, create_registered(agent_id))

        logger.info(f"Agent registered: {agent_id} on {handle.conn_id}")

    async def _handle_signal(
        self,
        handle: ConnectionHandle,
        session: Session,
        message: SignalMessage
    ) -> None:
        """
        Handle signal.

        Forwards the payload to the target's connection. Failures are
        reported to the sender only.
        """
        sender_id = session.current_id
        if sender_id is None:
            await self._reply(handle, create_error(
                ErrorCode.NOT_REGISTERED,
                "Register before sending signals",
                message.target_agent_id
            ))
            return

        if message.from_agent_id is not None and message.from_agent_id != sender_id:
            logger.debug(
                f"Ignoring claimed sender {message.from_agent_id} on {handle.conn_id}; "
                f"using registered id {sender_id}"
            )

        result = await self._router.route(sender_id, message)
        if not result.delivered:
            await self._reply(handle, create_error(
                result.error_code or ErrorCode.DELIVERY_FAILED,
                result.reason or f"Could not deliver signal to {result.target_agent_id}",
                result.target_agent_id
            ))

    async def _handle_ping(
        self,
        handle: ConnectionHandle,
        session: Session,
        message: PingMessage
    ) -> None:
        """Handle ping."""
        await self._reply(handle, create_pong())

    async def _cleanup_connection(self, handle: ConnectionHandle, session: Session) -> None:
        """Close the handle and release the session's binding."""
        handle.mark_closed()
        self._connections.discard(handle)

        agent_id = session.current_id
        released = await session.on_close()

        # A failed send may already have pruned our binding; the agent is
        # offline unless another live connection now holds its id
        if agent_id is not None and not released:
            released = not await self._registry.is_bound(agent_id)

        if released and agent_id is not None:
            logger.info(f"Agent {agent_id} offline ({handle.conn_id})")
            await self._update_presence(agent_id, False)
        else:
            logger.info(f"WebSocket disconnected: {handle.conn_id}")

    async def _update_presence(
        self,
        agent_id: str,
        is_online: bool,
        connection_info: dict[str, Any] | None = None
    ) -> None:
        """Mirror presence into the profile store, if one is configured."""
        if self._profiles is None:
            return
        try:
            profile = await self._profiles.set_presence(agent_id, is_online, connection_info)
        except StorageError as e:
            logger.error(f"Failed to update presence for {agent_id}: {e}")
            return
        if profile is None:
            logger.debug(f"No stored profile for {agent_id}; presence not recorded")
