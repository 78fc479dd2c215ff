"""
Signal Router

Forwards a signal to the connection bound to its target agent id.

Routing flow:
1. Look up the target in the registry
2. Send `{"type": "signal", "from": ..., "signal": ...}` to its handle
3. Report the outcome; the caller replies to the sender on failure

Delivery is fire-and-forget: no acknowledgement, no retry. The router
holds no state of its own and never raises for an undeliverable signal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rendezvous.protocol.messages import (
    ErrorCode,
    SignalMessage,
    create_signal_delivery,
    encode_message,
)
from rendezvous.registry import ConnectionRegistry
from rendezvous.transport.connection import ConnectionClosedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteResult:
    """Outcome of routing one signal."""
    target_agent_id: str
    delivered: bool
    error_code: ErrorCode | None = None
    reason: str | None = None


class SignalRouter:
    """
    Routes signals between registered agents.
    """

    def __init__(self, registry: ConnectionRegistry):
        """
        Args:
            registry: Registry used to resolve targets
        """
        self._registry = registry

    async def route(self, sender_id: str, signal: SignalMessage) -> RouteResult:
        """
        Deliver a signal to its target.

        Args:
            sender_id: Registered identity of the sending connection;
                becomes the `from` field seen by the target
            signal: The decoded signal message

        Returns:
            RouteResult describing delivery or the reason it failed
        """
        target_id = signal.target_agent_id
        handle = await self._registry.lookup(target_id)

        if handle is None:
            logger.warning(f"Signal {sender_id} -> {target_id}: target not online")
            return RouteResult(
                target_agent_id=target_id,
                delivered=False,
                error_code=ErrorCode.TARGET_OFFLINE,
                reason=f"Target agent {target_id} is not online",
            )

        frame = encode_message(create_signal_delivery(sender_id, signal.payload))
        try:
            await handle.send(frame)
        except ConnectionClosedError as e:
            logger.warning(f"Signal {sender_id} -> {target_id}: delivery failed: {e}")
            return RouteResult(
                target_agent_id=target_id,
                delivered=False,
                error_code=ErrorCode.DELIVERY_FAILED,
                reason=f"Could not deliver signal to {target_id}",
            )

        logger.debug(f"Signal forwarded {sender_id} -> {target_id} ({handle.conn_id})")
        return RouteResult(target_agent_id=target_id, delivered=True)
