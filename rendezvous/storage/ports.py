"""
Storage Port Interfaces

Abstract contract for the agent profile store. All persistence APIs are
async. No sync DB calls allowed.

The profile store is durable bookkeeping around the relay: public keys,
devices, online flag and last-seen time. The connection registry does not
depend on it; routing works with no store at all.

Adapters (in-memory, SQLAlchemy) implement ProfileStore and are injected
into the REST API and the WebSocket handler.

Thread-safety: All implementations must be safe for concurrent async usage.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Agent Profile
# =============================================================================

@dataclass
class AgentProfile:
    """
    Stored agent data.

    Storage-level representation; the REST layer maps it to its own
    response shapes.
    """
    agent_id: str
    public_key: str | None = None
    device_fingerprint: str | None = None
    devices: list[dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    is_online: bool = False
    last_seen: datetime | None = None
    connection_info: dict[str, Any] = field(default_factory=dict)


class ProfileStore(ABC):
    """
    Storage interface for agent profiles.
    """

    @abstractmethod
    async def create(self, profile: AgentProfile) -> AgentProfile:
        """
        Create a new profile.

        Args:
            profile: Profile to persist

        Returns:
            The stored profile

        Raises:
            ConflictError: A profile with this agent_id already exists
            StorageError: If creation fails
        """
        ...

    @abstractmethod
    async def get(self, agent_id: str) -> AgentProfile | None:
        """
        Get a profile by agent id.

        Returns:
            Profile or None if not found
        """
        ...

    @abstractmethod
    async def set_presence(
        self,
        agent_id: str,
        is_online: bool,
        connection_info: dict[str, Any] | None = None
    ) -> AgentProfile | None:
        """
        Update the online flag and stamp last_seen with the current time.

        Args:
            agent_id: Target profile
            is_online: New online flag
            connection_info: Replaces the stored connection info when given

        Returns:
            Updated profile, or None if no profile exists for agent_id
        """
        ...

    @abstractmethod
    async def search(self, query: str, limit: int = 20) -> list[AgentProfile]:
        """
        Find profiles whose agent id contains `query`, case-insensitively.

        Args:
            query: Substring to match
            limit: Maximum number of results

        Returns:
            Matching profiles ordered by agent id
        """
        ...

    async def close(self) -> None:
        """
        Release connections.

        Called during shutdown. Implementations with resources override it.
        """
        pass


# =============================================================================
# Exceptions
# =============================================================================

class StorageError(Exception):
    """Base exception for storage errors."""
    pass


class ConflictError(StorageError):
    """Conflict during write (e.g., duplicate key)."""
    pass
