"""Unit tests for buildloop.agents.agent module."""

import pytest
from pydantic import BaseModel

from buildloop.agents import Agent
from buildloop.agents.agent import last_assistant_text_message_content
from buildloop.core.state import NetworkState
from buildloop.tools.tool import Tool


class EchoInput(BaseModel):
    text: str


def make_echo_tool(calls):
    async def handler(run, input: EchoInput) -> str:
        async def _echo() -> str:
            calls.append((run.step_key, input.text))
            return f"echo: {input.text}"

        return await run.ctx.step.run(run.step_key, _echo)

    return Tool(id="echo", description="Echo text back", input_schema=EchoInput, handler=handler)


class TestLastAssistantTextMessageContent:
    """Tests for last_assistant_text_message_content."""

    def test_returns_latest_assistant_text(self):
        """Test that the newest assistant message wins."""
        messages = [
            {"role": "assistant", "content": "first"},
            {"role": "user", "content": "again"},
            {"role": "assistant", "content": "second"},
            {"role": "tool", "content": "output"},
        ]
        assert last_assistant_text_message_content(messages) == "second"

    def test_content_parts(self):
        """Test that only text parts are joined."""
        messages = [
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Hello "},
                    {"type": "image", "url": "x"},
                    {"type": "text", "text": "world"},
                ],
            }
        ]
        assert last_assistant_text_message_content(messages) == "Hello world"

    def test_no_text(self):
        """Test assistant messages without text content."""
        assert last_assistant_text_message_content([{"role": "assistant", "content": None}]) is None
        assert last_assistant_text_message_content([]) is None
        assert last_assistant_text_message_content(None) is None


class TestAgentRun:
    """Tests for Agent.run."""

    @pytest.mark.asyncio
    async def test_records_summary_on_sentinel(
        self, workflow_context, in_execution, scripted_provider
    ):
        """Test that the completion marker sets the state summary."""
        provider = scripted_provider("<task_summary>Built a blog</task_summary>")
        agent = Agent(name="code-agent", system_prompt="SYS", provider=provider)
        state = NetworkState()

        outcome = await in_execution(
            workflow_context,
            agent.run,
            workflow_context,
            state,
            [{"role": "user", "content": "Build a blog"}],
            None,
            1,
        )

        assert state.summary == "<task_summary>Built a blog</task_summary>"
        assert outcome.tool_results is None
        assert outcome.step.step == 1
        assert outcome.messages[0] == {"role": "system", "content": "SYS"}
        assert outcome.messages[-1]["role"] == "assistant"

    @pytest.mark.asyncio
    async def test_plain_text_does_not_complete(
        self, workflow_context, in_execution, scripted_provider
    ):
        """Test that text without the marker leaves the summary unset."""
        agent = Agent(name="a", system_prompt="SYS", provider=scripted_provider("Working on it"))
        state = NetworkState()

        await in_execution(workflow_context, agent.run, workflow_context, state, [], None, 1)

        assert state.summary is None

    @pytest.mark.asyncio
    async def test_dispatches_tool_calls_in_order(
        self, workflow_context, in_execution, scripted_provider
    ):
        """Test that requested tools run sequentially with per-call step keys."""
        calls = []
        provider = scripted_provider(
            {"tool_calls": [("echo", {"text": "one"}), ("echo", {"text": "two"})]}
        )
        agent = Agent(
            name="a", system_prompt="SYS", provider=provider, tools=[make_echo_tool(calls)]
        )

        outcome = await in_execution(
            workflow_context, agent.run, workflow_context, NetworkState(), [], None, 3
        )

        assert calls == [("3.tool.echo.0", "one"), ("3.tool.echo.1", "two")]
        assert outcome.tool_results == [
            {"type": "function_call_output", "call_id": "call_1_0", "output": "echo: one"},
            {"type": "function_call_output", "call_id": "call_1_1", "output": "echo: two"},
        ]
        assert [r.status for r in outcome.step.tool_results] == ["completed", "completed"]
        assert outcome.step.usage.total_tokens == 15

    @pytest.mark.asyncio
    async def test_unknown_tool_gets_error_output(
        self, workflow_context, in_execution, scripted_provider
    ):
        """Test that a call to a missing tool still gets a failed result."""
        provider = scripted_provider({"tool_calls": [("deleteEverything", {})]})
        agent = Agent(name="a", system_prompt="SYS", provider=provider)

        outcome = await in_execution(
            workflow_context, agent.run, workflow_context, NetworkState(), [], None, 1
        )

        assert outcome.tool_results[0]["output"] == "Error: tool 'deleteEverything' does not exist"
        assert outcome.step.tool_results[0].status == "failed"

    @pytest.mark.asyncio
    async def test_sends_tool_definitions_and_config(
        self, workflow_context, in_execution, scripted_provider
    ):
        """Test the model, temperature and tools passed to the provider."""
        provider = scripted_provider("ok")
        agent = Agent(
            name="a",
            system_prompt="SYS",
            provider=provider,
            tools=[make_echo_tool([])],
            model="gpt-4.1-mini",
            temperature=0.1,
        )

        await in_execution(
            workflow_context, agent.run, workflow_context, NetworkState(), [], None, 1
        )

        call = provider.calls[0]
        assert call["model"] == "gpt-4.1-mini"
        assert call["temperature"] == 0.1
        assert [tool["name"] for tool in call["tools"]] == ["echo"]

    @pytest.mark.asyncio
    async def test_requires_execution_context(self, workflow_context, scripted_provider):
        """Test that running outside a workflow execution fails."""
        agent = Agent(name="a", system_prompt="SYS", provider=scripted_provider("ok"))

        with pytest.raises(ValueError, match="workflow execution context"):
            await agent.run(workflow_context, NetworkState(), [], None, 1)

    @pytest.mark.asyncio
    async def test_replay_does_not_call_model_again(
        self, workflow_context, in_execution, scripted_provider
    ):
        """Test that a checkpointed model call is replayed from the step store."""
        provider = scripted_provider("<task_summary>done</task_summary>")
        agent = Agent(name="a", system_prompt="SYS", provider=provider)

        await in_execution(
            workflow_context, agent.run, workflow_context, NetworkState(), [], None, 1
        )
        state = NetworkState()
        await in_execution(workflow_context, agent.run, workflow_context, state, [], None, 1)

        assert len(provider.calls) == 1
        assert state.summary == "<task_summary>done</task_summary>"
