# REST API
# Agent profile endpoints (register, heartbeat, find, search, status)

from rendezvous.api.routes import create_agents_router

__all__ = ["create_agents_router"]
