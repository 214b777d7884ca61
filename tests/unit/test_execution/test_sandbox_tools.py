"""Unit tests for the sandbox tools (terminal, createOrUpdateFiles, readFiles)."""

import json

import pytest

from buildloop.core.state import NetworkState
from buildloop.execution import sandbox_tools
from buildloop.execution.errors import SANDBOX_RETRY_HINT
from buildloop.execution.sandbox_manager import ProjectSandboxManager
from buildloop.execution.types import ExecResult
from buildloop.tools.tool import ToolRunContext


@pytest.fixture
def manager(history_store, fake_environments):
    return ProjectSandboxManager(history_store, fake_environments)


@pytest.fixture
def state():
    return NetworkState()


async def _setup(manager, history_store):
    project = await history_store.create_project("tools")
    info = await manager.get_or_create_project_sandbox(project.id)
    tools = {tool.id: tool for tool in sandbox_tools(manager, info.sandbox_id)}
    return tools, await manager.get_sandbox(info.sandbox_id)


def _run(ctx, state, key):
    return ToolRunContext(ctx=ctx, state=state, step_key=key)


class TestSandboxToolsFactory:
    """Tests for sandbox_tools."""

    @pytest.mark.asyncio
    async def test_tool_ids(self, manager, history_store):
        """Test that the three sandbox tools are created."""
        tools, _ = await _setup(manager, history_store)
        assert set(tools) == {"terminal", "createOrUpdateFiles", "readFiles"}

    @pytest.mark.asyncio
    async def test_definitions_expose_schemas(self, manager, history_store):
        """Test the function-calling definitions."""
        tools, _ = await _setup(manager, history_store)
        definition = tools["terminal"].to_llm_tool_definition()
        assert definition["name"] == "terminal"
        assert "command" in definition["parameters"]["properties"]


class TestTerminalTool:
    """Tests for the terminal tool."""

    @pytest.mark.asyncio
    async def test_returns_stdout(self, manager, history_store, workflow_context, state):
        """Test that a successful command returns its stdout."""
        tools, env = await _setup(manager, history_store)
        env.command_results["ls"] = ExecResult(exit_code=0, stdout="app\n", stderr="")

        result = await tools["terminal"].invoke(
            _run(workflow_context, state, "1.tool.terminal.0"), {"command": "ls"}
        )

        assert result == "app\n"
        assert env.commands == ["ls"]

    @pytest.mark.asyncio
    async def test_command_failure_reports_output(
        self, manager, history_store, workflow_context, state
    ):
        """Test that a failing command returns the error with captured output."""
        tools, env = await _setup(manager, history_store)
        env.command_results["npm test"] = ExecResult(exit_code=1, stdout="ran", stderr="boom")

        result = await tools["terminal"].invoke(
            _run(workflow_context, state, "1.tool.terminal.0"), {"command": "npm test"}
        )

        assert result.startswith("Command failed: exit status 1")
        assert "stdout: ran" in result
        assert "stderr: boom" in result

    @pytest.mark.asyncio
    async def test_connection_reset_returns_hint(
        self, manager, history_store, workflow_context, state
    ):
        """Test that a connectivity failure becomes the retry hint instead of raising."""
        tools, env = await _setup(manager, history_store)
        env.error = OSError("read ECONNRESET")

        result = await tools["terminal"].invoke(
            _run(workflow_context, state, "1.tool.terminal.0"), {"command": "ls"}
        )

        assert result == SANDBOX_RETRY_HINT

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, manager, history_store, workflow_context, state):
        """Test that schema violations are reported to the model."""
        tools, env = await _setup(manager, history_store)

        result = await tools["terminal"].invoke(_run(workflow_context, state, "k"), {})

        assert result.startswith("Invalid arguments for tool 'terminal'")
        assert env.commands == []

    @pytest.mark.asyncio
    async def test_replay_skips_command(self, manager, history_store, workflow_context, state):
        """Test that a checkpointed invocation is not executed again."""
        tools, env = await _setup(manager, history_store)
        env.command_results["ls"] = ExecResult(exit_code=0, stdout="first", stderr="")
        run = _run(workflow_context, state, "1.tool.terminal.0")

        await tools["terminal"].invoke(run, {"command": "ls"})
        result = await tools["terminal"].invoke(run, {"command": "ls"})

        assert result == "first"
        assert env.commands == ["ls"]


class TestCreateOrUpdateFilesTool:
    """Tests for the createOrUpdateFiles tool."""

    @pytest.mark.asyncio
    async def test_writes_and_merges(self, manager, history_store, workflow_context, state):
        """Test that written files land in the sandbox and merge into the state."""
        tools, env = await _setup(manager, history_store)
        state.files = {"app/page.tsx": "old", "lib/keep.ts": "keep"}

        result = await tools["createOrUpdateFiles"].invoke(
            _run(workflow_context, state, "1.tool.createOrUpdateFiles.0"),
            {
                "files": [
                    {"path": "app/page.tsx", "content": "new"},
                    {"path": "app/about/page.tsx", "content": "about"},
                ]
            },
        )

        assert result == "Created or updated 2 file(s): app/page.tsx, app/about/page.tsx"
        assert env.files == {"app/page.tsx": "new", "app/about/page.tsx": "about"}
        assert state.files == {
            "app/page.tsx": "new",
            "lib/keep.ts": "keep",
            "app/about/page.tsx": "about",
        }

    @pytest.mark.asyncio
    async def test_failure_leaves_state_untouched(
        self, manager, history_store, workflow_context, state
    ):
        """Test that a failed write returns an error and does not merge."""
        tools, env = await _setup(manager, history_store)
        state.files = {"a.ts": "a"}
        env.error = PermissionError("read-only file system")

        result = await tools["createOrUpdateFiles"].invoke(
            _run(workflow_context, state, "k"), {"files": [{"path": "a.ts", "content": "b"}]}
        )

        assert result == "Error: read-only file system"
        assert state.files == {"a.ts": "a"}

    @pytest.mark.asyncio
    async def test_sandbox_error_returns_hint(
        self, manager, history_store, workflow_context, state
    ):
        """Test that a lost sandbox becomes the retry hint."""
        tools, env = await _setup(manager, history_store)
        env.error = ConnectionError("Sandbox not found")

        result = await tools["createOrUpdateFiles"].invoke(
            _run(workflow_context, state, "k"), {"files": [{"path": "a.ts", "content": "b"}]}
        )

        assert result == SANDBOX_RETRY_HINT
        assert state.files == {}

    @pytest.mark.asyncio
    async def test_replay_restores_state(self, manager, history_store, workflow_context):
        """Test that replaying the step rebuilds the accumulator without writing."""
        tools, env = await _setup(manager, history_store)
        args = {"files": [{"path": "a.ts", "content": "a"}]}

        await tools["createOrUpdateFiles"].invoke(
            _run(workflow_context, NetworkState(), "1.tool.createOrUpdateFiles.0"), args
        )
        replayed_state = NetworkState()
        await tools["createOrUpdateFiles"].invoke(
            _run(workflow_context, replayed_state, "1.tool.createOrUpdateFiles.0"), args
        )

        assert replayed_state.files == {"a.ts": "a"}
        assert env.write_log == ["a.ts"]


class TestReadFilesTool:
    """Tests for the readFiles tool."""

    @pytest.mark.asyncio
    async def test_returns_json_contents(self, manager, history_store, workflow_context, state):
        """Test that contents are returned as a JSON list in request order."""
        tools, env = await _setup(manager, history_store)
        env.files = {"a.ts": "A", "b.ts": "B"}

        result = await tools["readFiles"].invoke(
            _run(workflow_context, state, "k"), {"files": ["b.ts", "a.ts"]}
        )

        assert json.loads(result) == [
            {"path": "b.ts", "content": "B"},
            {"path": "a.ts", "content": "A"},
        ]

    @pytest.mark.asyncio
    async def test_missing_file(self, manager, history_store, workflow_context, state):
        """Test that a read error is returned as text."""
        tools, _ = await _setup(manager, history_store)

        result = await tools["readFiles"].invoke(
            _run(workflow_context, state, "k"), {"files": ["missing.ts"]}
        )

        assert result.startswith("Error reading files:")
        assert "missing.ts" in result

    @pytest.mark.asyncio
    async def test_sandbox_error_returns_hint(
        self, manager, history_store, workflow_context, state
    ):
        """Test that a timeout becomes the retry hint."""
        tools, env = await _setup(manager, history_store)
        env.error = TimeoutError()

        result = await tools["readFiles"].invoke(
            _run(workflow_context, state, "k"), {"files": ["a.ts"]}
        )

        assert result == SANDBOX_RETRY_HINT
