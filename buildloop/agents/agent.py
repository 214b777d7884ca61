"""Agent class: one model call plus the tool calls it requests."""

import json
import logging
from typing import Any

from pydantic import BaseModel

from ..core.context import WorkflowContext
from ..core.state import NetworkState
from ..llm import LLMProvider, _llm_generate
from ..tools.tool import Tool, ToolRunContext
from ..types.types import AgentConfig, Step, ToolCall, ToolResult, Usage
from ..utils.serializer import json_serialize, serialize

logger = logging.getLogger(__name__)

# Marker the model emits once its work is done
COMPLETION_SENTINEL = "<task_summary>"


def last_assistant_text_message_content(messages: list[dict[str, Any]] | None) -> str | None:
    """Return the text of the most recent assistant message, if it has any."""
    for message in reversed(messages or []):
        if message.get("role") != "assistant":
            continue
        content = message.get("content")
        if isinstance(content, str) and content:
            return content
        if isinstance(content, list):
            # Content parts: keep only the text ones
            text = "".join(
                part.get("text", "")
                for part in content
                if isinstance(part, dict) and part.get("type") == "text"
            )
            return text or None
        return None
    return None


class AgentIteration(BaseModel):
    """Outcome of one agent run inside a network."""

    messages: list[dict[str, Any]]
    tool_results: list[dict[str, Any]] | None = None
    step: Step


class Agent:
    """
    An LLM-driven agent with a fixed system prompt and a set of tools.

    Each call to :meth:`run` is one network iteration: the model is called
    as a durable step, :meth:`on_response` inspects its answer, and every
    requested tool runs in order as its own durable step.

    Tool calls execute sequentially because tools mutate the shared
    ``NetworkState``.
    """

    def __init__(
        self,
        name: str,
        system_prompt: str,
        provider: LLMProvider,
        tools: list[Tool] | None = None,
        model: str = "gpt-4.1",
        description: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ):
        self.name = name
        self.description = description
        self.system_prompt = system_prompt
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.tools = tools or []
        self._tools_by_id = {tool.id: tool for tool in self.tools}

    def _build_tools_schema(self) -> list[dict[str, Any]]:
        return [tool.to_llm_tool_definition() for tool in self.tools]

    def _agent_config(self) -> AgentConfig:
        return AgentConfig(
            name=self.name,
            provider="openai",
            model=self.model,
            tools=self._build_tools_schema(),
            system_prompt=self.system_prompt,
            max_output_tokens=self.max_output_tokens,
            temperature=self.temperature,
        )

    def on_response(self, state: NetworkState, llm_result: dict[str, Any]) -> None:
        """Record the run summary once the model emits the completion sentinel."""
        text = last_assistant_text_message_content(llm_result.get("raw_output"))
        if text and COMPLETION_SENTINEL in text:
            state.summary = text

    async def run(
        self,
        ctx: WorkflowContext,
        state: NetworkState,
        messages: list[dict[str, Any]],
        tool_results: list[dict[str, Any]] | None,
        iteration: int,
    ) -> AgentIteration:
        """Run one iteration.

        Args:
            ctx: Workflow context of the current execution
            state: The run's network state
            messages: Conversation so far
            tool_results: ``function_call_output`` items from the previous iteration
            iteration: 1-based iteration number, used in step keys

        Returns:
            AgentIteration with the updated conversation and this iteration's tool outputs
        """
        llm_result = await _llm_generate(
            ctx,
            self.provider,
            {
                "agent_config": self._agent_config().model_dump(mode="json"),
                "messages": messages,
                "agent_step": iteration,
                "tool_results": tool_results,
            },
        )

        if not llm_result.get("raw_output"):
            raise Exception(
                f"LLM failed to generate output: agent={self.name}, agent_step={iteration}"
            )

        self.on_response(state, llm_result)

        tool_calls = llm_result.get("tool_calls") or []
        current_iteration_tool_results: list[dict[str, Any]] = []
        tool_results_recorded: list[ToolResult] = []

        for idx, tool_call in enumerate(tool_calls):
            if not (isinstance(tool_call, dict) and isinstance(tool_call.get("function"), dict)):
                continue
            tool_name = tool_call["function"].get("name")
            tool_args_str = tool_call["function"].get("arguments") or "{}"
            tool_call_call_id = tool_call.get("call_id")
            if not tool_name:
                continue

            tool = self._tools_by_id.get(tool_name)
            if tool is None:
                logger.warning("Tool '%s' not found on agent %s", tool_name, self.name)
                tool_result: Any = f"Error: tool '{tool_name}' does not exist"
                status = "failed"
            else:
                try:
                    tool_args = (
                        json.loads(tool_args_str)
                        if isinstance(tool_args_str, str)
                        else tool_args_str
                    )
                except json.JSONDecodeError:
                    tool_args = {}

                run = ToolRunContext(
                    ctx=ctx, state=state, step_key=f"{iteration}.tool.{tool_name}.{idx}"
                )
                tool_result = await tool.invoke(run, tool_args)
                status = "completed"

            current_iteration_tool_results.append(
                {
                    "type": "function_call_output",
                    "call_id": tool_call_call_id,
                    "output": json_serialize(tool_result),
                }
            )
            tool_results_recorded.append(
                ToolResult(
                    tool_name=tool_name,
                    status=status,
                    result=serialize(tool_result),
                    tool_call_call_id=tool_call_call_id or "",
                )
            )

        usage_dict = llm_result.get("usage")
        step = Step(
            step=iteration,
            content=llm_result.get("content"),
            tool_calls=[
                ToolCall.model_validate(tc)
                for tc in tool_calls
                if isinstance(tc, dict) and isinstance(tc.get("function"), dict)
            ],
            tool_results=tool_results_recorded,
            usage=Usage.model_validate(usage_dict) if usage_dict else None,
        )

        return AgentIteration(
            messages=llm_result["raw_output"],
            tool_results=current_iteration_tool_results or None,
            step=step,
        )
