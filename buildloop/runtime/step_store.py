"""Checkpoint storage for durable step outputs.

A step output is keyed by ``(execution_id, step_key)``. Re-running an
execution with the same id replays checkpointed steps instead of executing
them again.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..storage.models import StepOutputModel


class StepStore(ABC):
    """Persists and retrieves step outputs for workflow executions."""

    @abstractmethod
    async def get_step_output(self, execution_id: str, step_key: str) -> dict[str, Any] | None:
        """Return the stored step output dict, or None if the step never ran."""
        ...

    @abstractmethod
    async def store_step_output(
        self,
        execution_id: str,
        step_key: str,
        outputs: Any | None = None,
        error: dict[str, Any] | None = None,
        success: bool = True,
        output_schema_name: str | None = None,
    ) -> None:
        ...


class InMemoryStepStore(StepStore):
    """Process-local step store. Used by tests and one-shot CLI runs."""

    def __init__(self):
        self._outputs: dict[tuple[str, str], dict[str, Any]] = {}

    async def get_step_output(self, execution_id: str, step_key: str) -> dict[str, Any] | None:
        return self._outputs.get((execution_id, step_key))

    async def store_step_output(
        self,
        execution_id: str,
        step_key: str,
        outputs: Any | None = None,
        error: dict[str, Any] | None = None,
        success: bool = True,
        output_schema_name: str | None = None,
    ) -> None:
        self._outputs[(execution_id, step_key)] = {
            "step_key": step_key,
            "outputs": outputs,
            "error": error,
            "success": success,
            "output_schema_name": output_schema_name,
        }

    def keys(self, execution_id: str) -> list[str]:
        """Step keys recorded for an execution, in completion order."""
        return [key for exec_id, key in self._outputs if exec_id == execution_id]


class SqlStepStore(StepStore):
    """Step store backed by the ``step_outputs`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> SqlStepStore:
        return cls(async_sessionmaker(engine, expire_on_commit=False))

    async def get_step_output(self, execution_id: str, step_key: str) -> dict[str, Any] | None:
        stmt = select(StepOutputModel).where(
            StepOutputModel.execution_id == execution_id,
            StepOutputModel.step_key == step_key,
        )
        async with self._session_factory() as session:
            row = (await session.scalars(stmt)).first()
            if row is None:
                return None
            return {
                "step_key": row.step_key,
                "outputs": row.outputs,
                "error": row.error,
                "success": row.success,
                "output_schema_name": row.output_schema_name,
            }

    async def store_step_output(
        self,
        execution_id: str,
        step_key: str,
        outputs: Any | None = None,
        error: dict[str, Any] | None = None,
        success: bool = True,
        output_schema_name: str | None = None,
    ) -> None:
        async with self._session_factory() as session:
            session.add(
                StepOutputModel(
                    execution_id=execution_id,
                    step_key=step_key,
                    outputs=outputs,
                    error=error,
                    success=success,
                    output_schema_name=output_schema_name,
                )
            )
            try:
                await session.commit()
            except IntegrityError as e:
                raise ValueError(
                    f"Step output already recorded: execution_id={execution_id}, "
                    f"step_key={step_key}"
                ) from e
