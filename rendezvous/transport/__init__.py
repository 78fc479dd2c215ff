# Transport Layer
# WebSocket connection handles and the per-connection protocol handler
#
# Only the connection primitives are re-exported here. The handler and the
# FastAPI app depend on the registry and router, which themselves depend on
# the connection primitives; import them from their modules:
#   rendezvous.transport.handler.SignalingHandler
#   rendezvous.transport.app.create_app

from rendezvous.transport.connection import (
    ConnectionHandle,
    ConnectionState,
    ConnectionClosedError,
)

__all__ = ["ConnectionHandle", "ConnectionState", "ConnectionClosedError"]
