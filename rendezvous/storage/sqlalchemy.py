"""
SQLAlchemy Storage Adapter

Async SQLAlchemy 2.0 implementation of the profile store.

Compatible with:
- SQLite (aiosqlite)
- PostgreSQL (asyncpg)
- MySQL (aiomysql)

All operations are async. Driver errors are wrapped in StorageError.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from rendezvous.storage.models import AgentModel
from rendezvous.storage.ports import (
    AgentProfile,
    ProfileStore,
    StorageError,
    ConflictError,
    utcnow,
)


# =============================================================================
# Converters
# =============================================================================

def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops the offset on DateTime(timezone=True); stored values are UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def agent_model_to_profile(model: AgentModel) -> AgentProfile:
    """Convert SQLAlchemy model to port record."""
    return AgentProfile(
        agent_id=model.agent_id,
        public_key=model.public_key,
        device_fingerprint=model.device_fingerprint,
        devices=list(model.devices or []),
        created_at=_as_utc(model.created_at),
        is_online=model.is_online,
        last_seen=_as_utc(model.last_seen),
        connection_info=dict(model.connection_info or {}),
    )


def profile_to_agent_model(profile: AgentProfile) -> AgentModel:
    """Convert port record to SQLAlchemy model."""
    return AgentModel(
        agent_id=profile.agent_id,
        public_key=profile.public_key,
        device_fingerprint=profile.device_fingerprint,
        devices=profile.devices,
        created_at=profile.created_at,
        is_online=profile.is_online,
        last_seen=profile.last_seen,
        connection_info=profile.connection_info,
    )


# =============================================================================
# SQLAlchemy Profile Store
# =============================================================================

class SqlAlchemyProfileStore(ProfileStore):
    """
    SQLAlchemy implementation of profile storage.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None
    ):
        """
        Args:
            session_factory: Async session factory bound to the engine
            engine: Engine to dispose on close (optional)
        """
        self._session_factory = session_factory
        self._engine = engine

    async def create(self, profile: AgentProfile) -> AgentProfile:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    existing = await session.get(AgentModel, profile.agent_id)
                    if existing is not None:
                        raise ConflictError(f"Agent {profile.agent_id} already exists")
                    session.add(profile_to_agent_model(profile))
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same id
            raise ConflictError(f"Agent {profile.agent_id} already exists") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create agent {profile.agent_id}: {e}") from e

        return profile

    async def get(self, agent_id: str) -> AgentProfile | None:
        try:
            async with self._session_factory() as session:
                model = await session.get(AgentModel, agent_id)
                if model is None:
                    return None
                return agent_model_to_profile(model)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load agent {agent_id}: {e}") from e

    async def set_presence(
        self,
        agent_id: str,
        is_online: bool,
        connection_info: dict[str, Any] | None = None
    ) -> AgentProfile | None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    model = await session.get(AgentModel, agent_id)
                    if model is None:
                        return None

                    model.is_online = is_online
                    model.last_seen = utcnow()
                    if connection_info is not None:
                        model.connection_info = dict(connection_info)

                    return agent_model_to_profile(model)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update presence for {agent_id}: {e}") from e

    async def search(self, query: str, limit: int = 20) -> list[AgentProfile]:
        # LIKE wildcards in the query are matched literally
        escaped = (
            query.lower()
            .replace("\\", "\\\\")
            .replace("%", "\\%")
            .replace("_", "\\_")
        )
        stmt = (
            select(AgentModel)
            .where(func.lower(AgentModel.agent_id).like(f"%{escaped}%", escape="\\"))
            .order_by(AgentModel.agent_id)
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [agent_model_to_profile(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StorageError(f"Agent search failed: {e}") from e

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
