"""
Rendezvous Relay Application

FastAPI application with the relay WebSocket endpoint, the agent profile
REST API, a status page and a health check. This is the main entry point
for running the relay:

    uvicorn rendezvous.transport.app:app
    python -m rendezvous

WebSocket endpoints:
- /ws (and / for legacy clients that connect to the root)

Storage is configured via environment variables (see rendezvous.config
and rendezvous.storage.factory). Environment variables can be loaded from
a .env file in the working directory.

All components are created in the lifespan and attached to app.state;
nothing is module-global except the default `app` instance.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from rendezvous import __version__
from rendezvous.api import create_agents_router
from rendezvous.config import RelaySettings, configure_logging, settings_from_env
from rendezvous.registry import ConnectionRegistry
from rendezvous.routing import SignalRouter
from rendezvous.storage import ProfileStore, create_profile_store
from rendezvous.transport.handler import SignalingHandler

logger = logging.getLogger(__name__)

SERVICE_NAME = "Rendezvous Relay"


def create_app(
    settings: RelaySettings | None = None,
    profiles: ProfileStore | None = None,
) -> FastAPI:
    """
    Create the relay application.

    Args:
        settings: Relay settings (read from the environment when omitted)
        profiles: Profile store to use instead of building one from
            settings.storage (useful for tests)

    Returns:
        Configured FastAPI app
    """
    settings = settings or settings_from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Initializes and tears down all relay components.
        """
        configure_logging(settings.log_level)
        logger.info("Starting Rendezvous Relay...")

        store = profiles or await create_profile_store(settings.storage)
        logger.info(f"Profile store initialized: {type(store).__name__}")

        registry = ConnectionRegistry()
        router = SignalRouter(registry)
        handler = SignalingHandler(registry=registry, router=router, profiles=store)

        app.state.settings = settings
        app.state.profiles = store
        app.state.registry = registry
        app.state.handler = handler

        logger.info("Rendezvous Relay started")

        yield

        logger.info("Shutting down Rendezvous Relay...")
        await store.close()
        app.state.handler = None
        logger.info("Rendezvous Relay stopped")

    app = FastAPI(
        title=SERVICE_NAME,
        description="Rendezvous and signaling relay for peer-to-peer agents",
        version=__version__,
        lifespan=lifespan
    )

    # Browser clients call the REST API cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(create_agents_router())

    @app.websocket("/ws")
    @app.websocket("/")
    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket endpoint for agent signaling.

        Clients register an agent id, then exchange signals by target id.
        """
        handler = getattr(websocket.app.state, "handler", None)
        if handler is None:
            await websocket.close(code=1011, reason="Relay not initialized")
            return

        await handler.handle_connection(websocket)

    @app.get("/")
    async def status_page(request: Request):
        """Human-readable service summary."""
        registry = getattr(request.app.state, "registry", None)
        host = request.headers.get("host", f"localhost:{settings.port}")
        return {
            "name": SERVICE_NAME,
            "status": "operational",
            "version": __version__,
            "connections": registry.count if registry else 0,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {
                "websocket": f"ws://{host}/ws",
                "rest": {
                    "register": "POST /api/agents/register",
                    "find": "GET /api/agents/find/:agentId",
                    "search": "GET /api/agents/search?query=",
                    "status": "GET /api/agents/:agentId/status",
                    "heartbeat": "POST /api/agents/:agentId/heartbeat",
                },
            },
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        state = request.app.state
        registry = getattr(state, "registry", None)
        handler = getattr(state, "handler", None)
        store = getattr(state, "profiles", None)
        return {
            "status": "healthy",
            "connections": handler.connection_count if handler else 0,
            "agents": registry.count if registry else 0,
            "storage": type(store).__name__ if store else None,
        }

    return app


app = create_app()
