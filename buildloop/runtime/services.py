"""Shared services handed to every workflow execution."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from ..context.classifier import ProjectClassifier
from ..execution.e2b import E2BEnvironmentProvider
from ..execution.sandbox_manager import ProjectSandboxManager
from ..execution.types import E2BEnvironmentConfig
from ..llm.providers import LLMProvider, get_provider
from ..storage.history import HistoryStore, SqlHistoryStore
from ..storage.models import create_engine
from ..utils.config import Settings
from .step_store import SqlStepStore, StepStore


@dataclass
class Services:
    """Stores and providers the code-agent workflow talks to.

    Attributes:
        history: Turns, fragments and sandbox references
        sandbox_manager: Project -> sandbox mapping
        llm: Model provider used by the coding agent
        settings: Runtime settings
        step_store: Checkpoints for durable steps
        classifier: Optional project classifier (keyword table when None)
        engine: Engine backing the SQL stores, disposed on shutdown
    """

    history: HistoryStore
    sandbox_manager: ProjectSandboxManager
    llm: LLMProvider
    settings: Settings
    step_store: StepStore
    classifier: ProjectClassifier | None = None
    engine: AsyncEngine | None = None

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_services(settings: Settings, llm: LLMProvider | None = None) -> Services:
    """Wire the production services: SQL stores, E2B sandboxes and OpenAI."""
    engine = create_engine(settings.database_url)
    history = SqlHistoryStore.from_engine(engine)
    environments = E2BEnvironmentProvider(
        E2BEnvironmentConfig(
            template=settings.sandbox_template,
            api_key=settings.e2b_api_key,
            timeout=int(settings.sandbox_timeout_s),
        )
    )
    manager = ProjectSandboxManager(
        history,
        environments,
        template=settings.sandbox_template,
        sandbox_timeout_s=settings.sandbox_timeout_s,
    )
    if llm is None:
        llm = get_provider(
            "openai", api_key=settings.openai_api_key, base_url=settings.openai_base_url
        )
    return Services(
        history=history,
        sandbox_manager=manager,
        llm=llm,
        settings=settings,
        step_store=SqlStepStore.from_engine(engine),
        engine=engine,
    )
