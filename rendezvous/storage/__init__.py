# Storage Layer
# Pluggable persistence for agent profiles
#
# This module provides:
# - Port interface (ABC) defining the profile store contract
# - In-memory implementation for development/testing
# - SQLAlchemy implementation for production persistence
# - Factory for configuration-based adapter selection

from .ports import (
    AgentProfile,
    ProfileStore,
    StorageError,
    ConflictError,
)
from .factory import (
    StorageSettings,
    StorageBackend,
    create_profile_store,
    create_memory_profile_store,
    create_sqlite_profile_store,
    settings_from_env,
)

__all__ = [
    # Ports
    "AgentProfile",
    "ProfileStore",
    "StorageError",
    "ConflictError",
    # Factory
    "StorageSettings",
    "StorageBackend",
    "create_profile_store",
    "create_memory_profile_store",
    "create_sqlite_profile_store",
    "settings_from_env",
]
