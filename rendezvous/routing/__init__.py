# Signal Routing
# Resolves a target agent id and forwards opaque signaling payloads

from rendezvous.routing.router import SignalRouter, RouteResult

__all__ = ["SignalRouter", "RouteResult"]
