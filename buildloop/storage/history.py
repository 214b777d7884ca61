"""History store: ordered turns, their fragments, and project sandbox references.

The store is the only component that talks to the database. Everything it
returns is a detached Pydantic record so results can cross step boundaries
and be checkpointed as plain JSON.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .models import FragmentModel, MessageModel, MessageRole, MessageType, ProjectModel, utcnow

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class ProjectNotFoundError(LookupError):
    """Raised when a project id does not exist."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class FragmentRecord(BaseModel):
    """Complete file snapshot produced by one successful assistant turn."""

    id: str | None = None
    sandbox_url: str
    title: str
    files: dict[str, str] = Field(default_factory=dict)
    created_at: datetime | None = None


class MessageRecord(BaseModel):
    """One turn of a project's conversation."""

    id: str
    project_id: str
    role: MessageRole
    type: MessageType
    content: str
    created_at: datetime
    fragment: FragmentRecord | None = None


class ProjectRecord(BaseModel):
    id: str
    name: str
    active_sandbox_id: str | None = None
    sandbox_expires_at: datetime | None = None
    created_at: datetime | None = None


class SandboxRef(BaseModel):
    """Stored reference to a project's execution environment."""

    sandbox_id: str | None = None
    expires_at: datetime | None = None


class HistoryStore(ABC):
    """Durable storage consumed by the agent orchestration loop."""

    @abstractmethod
    async def fetch(
        self, project_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[MessageRecord]:
        """Return the latest ``limit`` turns, oldest first, with their fragments."""
        ...

    @abstractmethod
    async def fetch_latest_fragment_files(self, project_id: str) -> dict[str, str] | None:
        """Return the files of the newest ASSISTANT/RESULT fragment, if any."""
        ...

    @abstractmethod
    async def create_message(
        self,
        project_id: str,
        role: MessageRole,
        type: MessageType,
        content: str,
        fragment: FragmentRecord | None = None,
    ) -> MessageRecord:
        """Append a turn (and optionally its fragment) to a project."""
        ...

    @abstractmethod
    async def create_project(self, name: str) -> ProjectRecord:
        ...

    @abstractmethod
    async def get_project(self, project_id: str) -> ProjectRecord:
        ...

    @abstractmethod
    async def read_project_sandbox_ref(self, project_id: str) -> SandboxRef:
        ...

    @abstractmethod
    async def write_project_sandbox_ref(
        self, project_id: str, sandbox_id: str, expires_at: datetime
    ) -> None:
        ...

    @abstractmethod
    async def clear_project_sandbox_ref(self, project_id: str) -> None:
        ...

    @abstractmethod
    async def find_expired_sandbox_projects(self, now: datetime) -> list[ProjectRecord]:
        """Projects whose stored expiry is before ``now`` and whose sandbox id is set."""
        ...


class SqlHistoryStore(HistoryStore):
    """HistoryStore backed by SQLAlchemy's async ORM."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> SqlHistoryStore:
        return cls(async_sessionmaker(engine, expire_on_commit=False))

    # -- Turns --

    async def fetch(
        self, project_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[MessageRecord]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.project_id == project_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.seq.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
            # Newest window, returned in conversation order
            return [self._message_to_record(row) for row in reversed(rows)]

    async def fetch_latest_fragment_files(self, project_id: str) -> dict[str, str] | None:
        stmt = (
            select(FragmentModel)
            .join(MessageModel, FragmentModel.message_id == MessageModel.id)
            .where(
                MessageModel.project_id == project_id,
                MessageModel.role == MessageRole.ASSISTANT,
                MessageModel.type == MessageType.RESULT,
            )
            .order_by(FragmentModel.created_at.desc(), MessageModel.seq.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            fragment = (await session.scalars(stmt)).first()
            if fragment is None or fragment.files is None:
                return None
            return dict(fragment.files)

    async def create_message(
        self,
        project_id: str,
        role: MessageRole,
        type: MessageType,
        content: str,
        fragment: FragmentRecord | None = None,
    ) -> MessageRecord:
        if fragment is not None and (
            role != MessageRole.ASSISTANT or type != MessageType.RESULT
        ):
            raise ValueError("Only ASSISTANT/RESULT turns can carry a fragment")

        async with self._session_factory() as session:
            project = await session.get(ProjectModel, project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)

            last_seq = await session.scalar(
                select(func.coalesce(func.max(MessageModel.seq), 0)).where(
                    MessageModel.project_id == project_id
                )
            )
            message = MessageModel(
                project_id=project_id, role=role, type=type, content=content, seq=last_seq + 1
            )
            if fragment is not None:
                message.fragment = FragmentModel(
                    sandbox_url=fragment.sandbox_url,
                    title=fragment.title,
                    files=dict(fragment.files),
                )
            session.add(message)
            project.updated_at = utcnow()
            await session.commit()
            await session.refresh(message, ["fragment"])
            return self._message_to_record(message)

    # -- Projects --

    async def create_project(self, name: str) -> ProjectRecord:
        async with self._session_factory() as session:
            project = ProjectModel(name=name)
            session.add(project)
            await session.commit()
            return self._project_to_record(project)

    async def get_project(self, project_id: str) -> ProjectRecord:
        async with self._session_factory() as session:
            project = await session.get(ProjectModel, project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)
            return self._project_to_record(project)

    async def read_project_sandbox_ref(self, project_id: str) -> SandboxRef:
        project = await self.get_project(project_id)
        return SandboxRef(
            sandbox_id=project.active_sandbox_id, expires_at=project.sandbox_expires_at
        )

    async def write_project_sandbox_ref(
        self, project_id: str, sandbox_id: str, expires_at: datetime
    ) -> None:
        await self._update_sandbox_ref(project_id, sandbox_id, expires_at)

    async def clear_project_sandbox_ref(self, project_id: str) -> None:
        await self._update_sandbox_ref(project_id, None, None)

    async def find_expired_sandbox_projects(self, now: datetime) -> list[ProjectRecord]:
        stmt = select(ProjectModel).where(
            ProjectModel.sandbox_expires_at < now,
            ProjectModel.active_sandbox_id.is_not(None),
        )
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
            return [self._project_to_record(row) for row in rows]

    # -- Private helpers --

    async def _update_sandbox_ref(
        self, project_id: str, sandbox_id: str | None, expires_at: datetime | None
    ) -> None:
        stmt = (
            update(ProjectModel)
            .where(ProjectModel.id == project_id)
            .values(active_sandbox_id=sandbox_id, sandbox_expires_at=expires_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise ProjectNotFoundError(project_id)
            await session.commit()

    @staticmethod
    def _message_to_record(message: MessageModel) -> MessageRecord:
        fragment = None
        if message.fragment is not None:
            fragment = FragmentRecord(
                id=message.fragment.id,
                sandbox_url=message.fragment.sandbox_url,
                title=message.fragment.title,
                files=dict(message.fragment.files or {}),
                created_at=message.fragment.created_at,
            )
        return MessageRecord(
            id=message.id,
            project_id=message.project_id,
            role=message.role,
            type=message.type,
            content=message.content,
            created_at=message.created_at,
            fragment=fragment,
        )

    @staticmethod
    def _project_to_record(project: ProjectModel) -> ProjectRecord:
        return ProjectRecord(
            id=project.id,
            name=project.name,
            active_sandbox_id=project.active_sandbox_id,
            sandbox_expires_at=project.sandbox_expires_at,
            created_at=project.created_at,
        )
