"""
REST Request Models

Request bodies for the agent profile endpoints. Field names on the wire
are camelCase, matching the WebSocket protocol.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegisterAgentRequest(BaseModel):
    """Body of POST /api/agents/register."""

    model_config = ConfigDict(populate_by_name=True)

    agent_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        alias="agentId",
        description="Identifier the agent will register with on the relay"
    )
    public_key: str | None = Field(
        default=None,
        alias="publicKey",
        description="Agent public key, returned verbatim by find"
    )
    device_fingerprint: str | None = Field(
        default=None,
        alias="deviceFingerprint",
    )
    device_info: dict[str, Any] | None = Field(
        default=None,
        alias="deviceInfo",
        description="Free-form description of the registering device"
    )


class HeartbeatRequest(BaseModel):
    """Body of POST /api/agents/{agentId}/heartbeat."""

    model_config = ConfigDict(populate_by_name=True)

    connection_info: dict[str, Any] | None = Field(
        default=None,
        alias="connectionInfo",
    )
