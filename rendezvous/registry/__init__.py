# Connection Registry
# Agent id -> live connection binding, shared by all connection handlers

from rendezvous.registry.registry import ConnectionRegistry

__all__ = ["ConnectionRegistry"]
