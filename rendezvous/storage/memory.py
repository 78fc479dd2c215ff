"""
In-Memory Storage Adapter

Profile store kept in a dict, guarded by an asyncio lock.
Everything is lost on restart. Use for:
- Local development
- Unit/integration testing
- Deployments that only need the relay, not durable profiles
"""

import asyncio
from dataclasses import replace
from typing import Any

from rendezvous.storage.ports import (
    AgentProfile,
    ProfileStore,
    ConflictError,
    utcnow,
)


class InMemoryProfileStore(ProfileStore):
    """
    In-memory profile storage.

    Returns copies so callers cannot mutate stored records.
    """

    def __init__(self):
        self._profiles: dict[str, AgentProfile] = {}
        self._lock = asyncio.Lock()

    async def create(self, profile: AgentProfile) -> AgentProfile:
        async with self._lock:
            if profile.agent_id in self._profiles:
                raise ConflictError(f"Agent {profile.agent_id} already exists")
            self._profiles[profile.agent_id] = replace(profile)
            return replace(profile)

    async def get(self, agent_id: str) -> AgentProfile | None:
        async with self._lock:
            profile = self._profiles.get(agent_id)
            return replace(profile) if profile else None

    async def set_presence(
        self,
        agent_id: str,
        is_online: bool,
        connection_info: dict[str, Any] | None = None
    ) -> AgentProfile | None:
        async with self._lock:
            profile = self._profiles.get(agent_id)
            if profile is None:
                return None

            profile.is_online = is_online
            profile.last_seen = utcnow()
            if connection_info is not None:
                profile.connection_info = dict(connection_info)
            return replace(profile)

    async def search(self, query: str, limit: int = 20) -> list[AgentProfile]:
        needle = query.lower()
        async with self._lock:
            matches = sorted(
                (p for p in self._profiles.values() if needle in p.agent_id.lower()),
                key=lambda p: p.agent_id,
            )
            return [replace(p) for p in matches[:limit]]
