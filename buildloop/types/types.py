"""Type definitions for agent iterations, tool calls, and usage."""

from typing import Any

from pydantic import BaseModel


class Usage(BaseModel):
    """Token usage information from LLM calls."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class ToolCallFunction(BaseModel):
    """Function information within a tool call."""

    name: str
    arguments: str  # JSON string


class ToolCall(BaseModel):
    """A tool call made by the LLM."""

    id: str = ""
    type: str = "function"
    function: ToolCallFunction
    call_id: str | None = None


class ToolResult(BaseModel):
    """Result from executing a tool."""

    tool_name: str
    status: str  # completed, failed
    result: Any | None = None
    error: str | None = None
    tool_call_call_id: str


class Step(BaseModel):
    """One iteration of an agent: a model response plus its tool results."""

    step: int
    content: Any | None = None
    tool_calls: list[ToolCall] = []
    tool_results: list[ToolResult] = []
    usage: Usage | None = None


class AgentConfig(BaseModel):
    """Configuration for agent execution."""

    name: str
    provider: str
    model: str
    tools: list[dict[str, Any]] = []
    system_prompt: str | None = None
    max_output_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
