"""
SQLAlchemy Models for Relay Storage

Async-compatible SQLAlchemy 2.0 ORM model for agent profiles.

Designed to work with:
- SQLite (via aiosqlite)
- PostgreSQL (via asyncpg)
- MySQL (via aiomysql)

JSON column handling:
- PostgreSQL: Native JSONB
- SQLite/MySQL: TEXT with JSON serialization
"""

import json
from datetime import datetime

from sqlalchemy import String, Text, Boolean, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from rendezvous.storage.ports import utcnow


class JSONType(TypeDecorator):
    """
    Platform-agnostic JSON column.

    Uses JSONB on PostgreSQL, TEXT+JSON on SQLite/MySQL.
    """
    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.dumps(value)

    def process_result_value(self, value, dialect):
        if isinstance(value, str):
            return json.loads(value)
        return value


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class AgentModel(Base):
    """
    Durable agent profile.
    """
    __tablename__ = "relay_agents"

    agent_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Identity material supplied at registration
    public_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_fingerprint: Mapped[str | None] = mapped_column(String(255), nullable=True)
    devices: Mapped[list] = mapped_column(JSONType(), nullable=False, default=list)

    # Presence
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    connection_info: Mapped[dict] = mapped_column(JSONType(), nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow
    )

    __table_args__ = (
        Index("ix_relay_agents_online", "is_online"),
    )
