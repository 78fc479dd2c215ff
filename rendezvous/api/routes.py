"""
Agent Profile API

HTTP endpoints over the profile store:
- POST /api/agents/register -> create a profile (409 if the id is taken)
- POST /api/agents/{agentId}/heartbeat -> mark online, stamp last_seen
- GET /api/agents/find/{agentId} -> public key and presence
- GET /api/agents/search?query= -> ids containing query
- GET /api/agents/{agentId}/status -> presence only

These endpoints never touch the connection registry. Error bodies are
`{"error": "..."}`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, cast
from uuid import uuid4

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from rendezvous.api.schemas import HeartbeatRequest, RegisterAgentRequest
from rendezvous.storage import AgentProfile, ConflictError, ProfileStore, StorageError
from rendezvous.storage.ports import utcnow

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _get_profile_store(request: Request) -> ProfileStore:
    store = getattr(request.app.state, "profiles", None)
    if store is None:
        raise RuntimeError("Profile store not initialized (app.state.profiles)")
    return cast(ProfileStore, store)


def _get_search_limit(request: Request) -> int:
    settings = getattr(request.app.state, "settings", None)
    return settings.search_limit if settings is not None else DEFAULT_SEARCH_LIMIT


def create_agents_router() -> APIRouter:
    """Create the agent profile router, mounted under /api/agents."""
    router = APIRouter(prefix="/api/agents", tags=["agents"])

    @router.post("/register", status_code=201)
    async def register_agent(request: Request, body: RegisterAgentRequest) -> Any:
        logger.info(f"Registering agent: {body.agent_id}")
        store = _get_profile_store(request)

        now = utcnow()
        profile = AgentProfile(
            agent_id=body.agent_id,
            public_key=body.public_key,
            device_fingerprint=body.device_fingerprint,
            devices=[{
                "id": str(uuid4()),
                "fingerprint": body.device_fingerprint,
                "info": body.device_info,
                "registered_at": now.isoformat(),
            }],
            created_at=now,
            is_online=False,
        )

        try:
            created = await store.create(profile)
        except ConflictError:
            return _error(409, "Agent ID already exists. Choose a different ID.")
        except StorageError as e:
            logger.error(f"Registration error for {body.agent_id}: {e}")
            return _error(500, "Registration failed")

        return {
            "success": True,
            "message": "Agent registered successfully",
            "agent": {
                "id": created.agent_id,
                "created_at": _iso(created.created_at),
            },
        }

    @router.get("/search")
    async def search_agents(request: Request, query: str = "") -> Any:
        store = _get_profile_store(request)
        try:
            profiles = await store.search(query, limit=_get_search_limit(request))
        except StorageError as e:
            logger.error(f"Search error for {query!r}: {e}")
            return _error(500, "Search failed")

        return {
            "success": True,
            "agents": [
                {
                    "agent_id": p.agent_id,
                    "is_online": p.is_online,
                    "last_seen": _iso(p.last_seen),
                }
                for p in profiles
            ],
        }

    @router.get("/find/{agent_id}")
    async def find_agent(request: Request, agent_id: str) -> Any:
        store = _get_profile_store(request)
        try:
            profile = await store.get(agent_id)
        except StorageError as e:
            logger.error(f"Find error for {agent_id}: {e}")
            return _error(500, "Search failed")

        if profile is None:
            return _error(404, "Agent not found")

        return {
            "success": True,
            "agent": {
                "id": profile.agent_id,
                "publicKey": profile.public_key,
                "isOnline": profile.is_online,
                "lastSeen": _iso(profile.last_seen),
                "connectionInfo": profile.connection_info,
            },
        }

    @router.post("/{agent_id}/heartbeat")
    async def heartbeat(
        request: Request,
        agent_id: str,
        body: HeartbeatRequest | None = None
    ) -> Any:
        store = _get_profile_store(request)
        connection_info = body.connection_info if body else None
        try:
            profile = await store.set_presence(agent_id, True, connection_info)
        except StorageError as e:
            logger.error(f"Heartbeat error for {agent_id}: {e}")
            return _error(500, "Heartbeat failed")

        if profile is None:
            return _error(404, "Agent not found")

        return {
            "success": True,
            "status": "online",
            "last_seen": _iso(profile.last_seen),
        }

    @router.get("/{agent_id}/status")
    async def agent_status(request: Request, agent_id: str) -> Any:
        store = _get_profile_store(request)
        try:
            profile = await store.get(agent_id)
        except StorageError as e:
            logger.error(f"Status error for {agent_id}: {e}")
            return _error(500, "Status lookup failed")

        if profile is None:
            return _error(404, "Agent not found")

        return {
            "agentId": profile.agent_id,
            "isOnline": profile.is_online,
            "lastSeen": _iso(profile.last_seen),
        }

    return router
