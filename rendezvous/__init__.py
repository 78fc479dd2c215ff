# Rendezvous Relay
# Agents register a stable id over WebSocket and exchange opaque signaling
# payloads (e.g. WebRTC offers/answers) to set up direct peer connections

__version__ = "1.0.0"

# Re-export the relay core for convenience
from rendezvous.registry import ConnectionRegistry
from rendezvous.routing import SignalRouter, RouteResult
from rendezvous.session import Session, SessionState
from rendezvous.transport import ConnectionHandle, ConnectionState, ConnectionClosedError

__all__ = [
    "__version__",
    # Core
    "ConnectionRegistry",
    "SignalRouter",
    "RouteResult",
    "Session",
    "SessionState",
    "ConnectionHandle",
    "ConnectionState",
    "ConnectionClosedError",
]
