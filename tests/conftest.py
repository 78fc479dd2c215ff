"""Shared pytest fixtures for relay tests.

Provides an in-process fake WebSocket so the protocol handler can be driven
directly from async tests, plus registry/handler/store fixtures.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from rendezvous.registry import ConnectionRegistry
from rendezvous.routing import SignalRouter
from rendezvous.storage.memory import InMemoryProfileStore
from rendezvous.transport.connection import ConnectionHandle
from rendezvous.transport.handler import SignalingHandler


class FakeWebSocket:
    """Minimal stand-in for fastapi.WebSocket used by the handler.

    Frames pushed by the test are returned from receive(); frames the relay
    sends are recorded in `sent` and can be awaited with next_json().
    """

    def __init__(self) -> None:
        self.accepted = False
        self.fail_sends = False
        self.sent: list[str] = []
        self._incoming: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._outgoing: asyncio.Queue[str] = asyncio.Queue()

    # --- fastapi.WebSocket surface used by the relay ---

    async def accept(self) -> None:
        self.accepted = True

    async def receive(self) -> dict[str, Any]:
        return await self._incoming.get()

    async def send_text(self, data: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(data)
        await self._outgoing.put(data)

    # --- test side ---

    def push(self, message: dict[str, Any]) -> None:
        self.push_text(json.dumps(message))

    def push_text(self, text: str) -> None:
        self._incoming.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data: bytes) -> None:
        self._incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def disconnect(self, code: int = 1000) -> None:
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    async def next_json(self, timeout: float = 1.0) -> dict[str, Any]:
        return json.loads(await asyncio.wait_for(self._outgoing.get(), timeout))

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]


class Client:
    """A fake peer connected to a SignalingHandler."""

    def __init__(self, ws: FakeWebSocket, task: asyncio.Task, connection_id: str) -> None:
        self.ws = ws
        self.task = task
        self.connection_id = connection_id

    async def register(self, agent_id: str, **extra: Any) -> dict[str, Any]:
        self.ws.push({"type": "register", "agentId": agent_id, **extra})
        return await self.ws.next_json()

    async def close(self) -> None:
        self.ws.disconnect()
        await asyncio.wait_for(self.task, 1.0)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def profiles() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def handler(registry: ConnectionRegistry, profiles: InMemoryProfileStore) -> SignalingHandler:
    return SignalingHandler(registry=registry, router=SignalRouter(registry), profiles=profiles)


@pytest.fixture
async def connect(handler: SignalingHandler):
    """Factory: open a fake connection and consume the `connected` greeting."""
    clients: list[Client] = []

    async def _connect() -> Client:
        ws = FakeWebSocket()
        task = asyncio.create_task(handler.handle_connection(ws))  # type: ignore[arg-type]
        greeting = await ws.next_json()
        assert greeting["type"] == "connected"
        client = Client(ws, task, greeting["connectionId"])
        clients.append(client)
        return client

    yield _connect

    pending = [c.task for c in clients if not c.task.done()]
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


def make_handle() -> ConnectionHandle:
    """A handle over a fake socket, for registry/session/router unit tests."""
    return ConnectionHandle(FakeWebSocket())  # type: ignore[arg-type]
