"""Shared pytest configuration and fixtures."""

import json
import uuid
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from buildloop.core.context import WorkflowContext
from buildloop.core.workflow import _execution_context
from buildloop.execution.environment import EnvironmentProvider, ExecutionEnvironment
from buildloop.execution.sandbox_manager import ProjectSandboxManager
from buildloop.execution.types import ExecResult
from buildloop.llm.providers.base import LLMProvider, LLMResponse
from buildloop.runtime.services import Services
from buildloop.runtime.step_store import InMemoryStepStore
from buildloop.storage.history import SqlHistoryStore
from buildloop.storage.models import create_engine, init_db
from buildloop.utils.config import Settings


class FakeCommandError(Exception):
    """Raised by FakeEnvironment for a non-zero exit code."""


class FakeEnvironment(ExecutionEnvironment):
    """In-memory sandbox. Set ``error`` to make every operation fail with it."""

    def __init__(self, sandbox_id: str):
        self._sandbox_id = sandbox_id
        self.files: dict[str, str] = {}
        self.commands: list[str] = []
        self.command_results: dict[str, ExecResult] = {}
        self.write_log: list[str] = []
        self.error: Exception | None = None

    @property
    def sandbox_id(self) -> str:
        return self._sandbox_id

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def run_command(self, command, on_stdout=None, on_stderr=None, timeout=None):
        self._check()
        self.commands.append(command)
        result = self.command_results.get(command, ExecResult(exit_code=0, stdout="", stderr=""))
        if on_stdout and result.stdout:
            on_stdout(result.stdout)
        if on_stderr and result.stderr:
            on_stderr(result.stderr)
        if result.exit_code != 0:
            raise FakeCommandError(f"exit status {result.exit_code}")
        return result

    async def write_file(self, path: str, content: str) -> None:
        self._check()
        self.files[path] = content
        self.write_log.append(path)

    async def read_file(self, path: str) -> str:
        self._check()
        if path not in self.files:
            raise LookupError(f"No such file: {path}")
        return self.files[path]

    def get_host(self, port: int) -> str:
        return f"{port}-{self._sandbox_id}.e2b.app"


class FakeEnvironmentProvider(EnvironmentProvider):
    """Creates FakeEnvironments; sandboxes listed in ``dead`` refuse to connect."""

    def __init__(self):
        self.sandboxes: dict[str, FakeEnvironment] = {}
        self.created: list[str] = []
        self.connected: list[str] = []
        self.dead: set[str] = set()

    async def create(self, template: str) -> ExecutionEnvironment:
        sandbox = FakeEnvironment(f"sbx-{len(self.created) + 1}")
        self.sandboxes[sandbox.sandbox_id] = sandbox
        self.created.append(sandbox.sandbox_id)
        return sandbox

    async def connect(self, sandbox_id: str) -> ExecutionEnvironment:
        if sandbox_id in self.dead or sandbox_id not in self.sandboxes:
            raise ConnectionError(f"Sandbox not found: {sandbox_id}")
        self.connected.append(sandbox_id)
        return self.sandboxes[sandbox_id]


class ScriptedProvider(LLMProvider):
    """LLM provider that replays scripted turns.

    A turn is a string (plain assistant text), an Exception (raised), or a
    dict with optional ``content`` and ``tool_calls`` (a list of
    ``(name, arguments)`` pairs). The last turn repeats once the script runs out.
    """

    def __init__(self, turns: list[Any]):
        self.turns = list(turns)
        self.calls: list[dict[str, Any]] = []

    async def generate(
        self,
        messages,
        model,
        tools=None,
        temperature=None,
        max_tokens=None,
        top_p=None,
        agent_config=None,
        tool_results=None,
        **kwargs,
    ) -> LLMResponse:
        self.calls.append(
            {
                "messages": [dict(m) for m in messages],
                "model": model,
                "tools": tools,
                "temperature": temperature,
                "agent_config": agent_config,
                "tool_results": tool_results,
            }
        )
        turn = self.turns.pop(0) if len(self.turns) > 1 else self.turns[0]
        if isinstance(turn, Exception):
            raise turn
        if isinstance(turn, str):
            turn = {"content": turn}

        processed = [dict(m) for m in messages]
        if agent_config and agent_config.get("system_prompt"):
            if not any(m.get("role") == "system" for m in processed):
                processed.insert(0, {"role": "system", "content": agent_config["system_prompt"]})
        for tr in tool_results or []:
            processed.append(
                {"role": "tool", "content": tr["output"], "tool_call_id": tr["call_id"]}
            )

        call_index = len(self.calls)
        tool_calls = [
            {
                "call_id": f"call_{call_index}_{idx}",
                "id": "",
                "type": "function",
                "function": {"name": name, "arguments": json.dumps(args)},
            }
            for idx, (name, args) in enumerate(turn.get("tool_calls", []))
        ]
        assistant: dict[str, Any] = {"role": "assistant", "content": turn.get("content")}
        if tool_calls:
            assistant["tool_calls"] = [
                {"id": tc["call_id"], "type": "function", "function": tc["function"]}
                for tc in tool_calls
            ]
        processed.append(assistant)

        return LLMResponse(
            content=turn.get("content") or "",
            usage={"input_tokens": 10, "output_tokens": 5, "total_tokens": 15},
            tool_calls=tool_calls,
            raw_output=processed,
            model=model,
            stop_reason="tool_calls" if tool_calls else "stop",
        )


@pytest.fixture
def step_store():
    """In-memory checkpoint store."""
    return InMemoryStepStore()


@pytest.fixture
def workflow_context(step_store):
    """Create a WorkflowContext backed by an in-memory step store."""
    return WorkflowContext(
        workflow_id="test-workflow",
        execution_id=str(uuid.uuid4()),
        step_store=step_store,
    )


@pytest.fixture
def in_execution():
    """Await a callable inside the execution context of a WorkflowContext."""

    async def _run(ctx: WorkflowContext, func, *args, **kwargs):
        token = _execution_context.set(
            {"execution_id": ctx.execution_id, "workflow_id": ctx.workflow_id}
        )
        try:
            return await func(*args, **kwargs)
        finally:
            _execution_context.reset(token)

    return _run


@pytest_asyncio.fixture
async def history_store():
    """SqlHistoryStore on a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield SqlHistoryStore.from_engine(engine)
    await engine.dispose()


@pytest.fixture
def fake_environments():
    """In-memory sandbox provider."""
    return FakeEnvironmentProvider()


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""

    def _make(*turns) -> ScriptedProvider:
        return ScriptedProvider(list(turns))

    return _make


@pytest.fixture
def no_retry_sleep():
    """Skip the backoff delays of failing steps."""
    with patch("buildloop.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def mock_openai_client():
    """Mock OpenAI AsyncOpenAI client."""
    client = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def make_services(history_store, fake_environments, step_store):
    """Factory for Services wired to in-memory fakes and the given provider."""

    def _make(llm: LLMProvider, **settings) -> Services:
        return Services(
            history=history_store,
            sandbox_manager=ProjectSandboxManager(history_store, fake_environments),
            llm=llm,
            settings=Settings(**settings),
            step_store=step_store,
        )

    return _make
