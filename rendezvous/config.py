"""
Relay Configuration

Settings are read from environment variables. A .env file in the working
directory is loaded first, so local overrides don't need exporting.

Environment variables:
- RELAY_HOST: Bind address (default: "0.0.0.0")
- RELAY_PORT / PORT: Bind port (default: 3000)
- RELAY_LOG_LEVEL: Root log level (default: "INFO")
- RELAY_SEARCH_LIMIT: Max results for agent search (default: 20)
- RELAY_CORS_ORIGINS: Comma-separated origins allowed to call the HTTP API
  (default: "*")
- RELAY_WS_PING_INTERVAL / RELAY_WS_PING_TIMEOUT: Transport-level
  WebSocket keepalive, enforced by uvicorn (default: 20s / 20s)
- RELAY_STORAGE_BACKEND, RELAY_DATABASE_URL, ...: see rendezvous.storage.factory
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from rendezvous.storage.factory import StorageSettings, settings_from_env as storage_settings_from_env

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class RelaySettings:
    """
    Process-level settings for the relay.

    Attributes:
        host: Bind address
        port: Bind port
        log_level: Root log level name
        search_limit: Max results returned by agent search
        cors_origins: Origins allowed by the CORS middleware
        ws_ping_interval: Seconds between transport pings (None disables)
        ws_ping_timeout: Seconds to wait for a transport pong
        storage: Profile store configuration
    """
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    search_limit: int = 20
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    ws_ping_interval: float | None = 20.0
    ws_ping_timeout: float | None = 20.0
    storage: StorageSettings = field(default_factory=StorageSettings)


def _optional_float(value: str | None, default: float | None) -> float | None:
    if value is None:
        return default
    if value.strip().lower() in ("", "none", "off", "0"):
        return None
    return float(value)


def _origins(value: str | None) -> list[str]:
    if value is None:
        return ["*"]
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def settings_from_env(load_env_file: bool = True) -> RelaySettings:
    """
    Build RelaySettings from the environment.

    Args:
        load_env_file: Load a .env file before reading variables
    """
    if load_env_file:
        load_dotenv()

    return RelaySettings(
        host=os.getenv("RELAY_HOST", "0.0.0.0"),
        port=int(os.getenv("RELAY_PORT", os.getenv("PORT", "3000"))),
        log_level=os.getenv("RELAY_LOG_LEVEL", "INFO").upper(),
        search_limit=int(os.getenv("RELAY_SEARCH_LIMIT", "20")),
        cors_origins=_origins(os.getenv("RELAY_CORS_ORIGINS")),
        ws_ping_interval=_optional_float(os.getenv("RELAY_WS_PING_INTERVAL"), 20.0),
        ws_ping_timeout=_optional_float(os.getenv("RELAY_WS_PING_TIMEOUT"), 20.0),
        storage=storage_settings_from_env(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
