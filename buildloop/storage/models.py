"""SQLAlchemy models for projects, turns, fragments and durable step outputs."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp. All stored datetimes are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class MessageRole(str, enum.Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class MessageType(str, enum.Enum):
    RESULT = "RESULT"
    ERROR = "ERROR"


class Base(DeclarativeBase):
    pass


class ProjectModel(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255))
    active_sandbox_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sandbox_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    messages: Mapped[list[MessageModel]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )


class MessageModel(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    content: Mapped[str] = mapped_column(Text)
    role: Mapped[MessageRole] = mapped_column(Enum(MessageRole))
    type: Mapped[MessageType] = mapped_column(Enum(MessageType))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    # Per-project insertion order; breaks ties between equal timestamps
    seq: Mapped[int] = mapped_column(Integer, default=0)

    project: Mapped[ProjectModel] = relationship(back_populates="messages")
    fragment: Mapped[FragmentModel | None] = relationship(
        back_populates="message", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )


class FragmentModel(Base):
    __tablename__ = "fragments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    message_id: Mapped[str] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"), unique=True
    )
    sandbox_url: Mapped[str] = mapped_column(String(2048))
    title: Mapped[str] = mapped_column(String(255))
    files: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    message: Mapped[MessageModel] = relationship(back_populates="fragment")


class StepOutputModel(Base):
    __tablename__ = "step_outputs"
    __table_args__ = (UniqueConstraint("execution_id", "step_key", name="uq_step_output"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    execution_id: Mapped[str] = mapped_column(String(64), index=True)
    step_key: Mapped[str] = mapped_column(String(255))
    outputs: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    output_schema_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    error: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


def create_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create the async engine used by the stores."""
    return create_async_engine(database_url, **kwargs)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
