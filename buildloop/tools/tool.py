"""Tool class for defining tools that can be called by LLM agents."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from ..core.context import WorkflowContext
    from ..core.state import NetworkState


@dataclass
class ToolRunContext:
    """Everything a tool handler needs for one invocation.

    Attributes:
        ctx: Workflow context, used to run the tool's work as a durable step
        state: The run's mutable network state (owned by one run only)
        step_key: Unique step key for this invocation within the execution
    """

    ctx: WorkflowContext
    state: NetworkState
    step_key: str


ToolHandler = Callable[[ToolRunContext, BaseModel], Awaitable[Any]]


class Tool:
    """
    A function the model can call during an agent run.

    Arguments from the model are validated against ``input_schema`` before
    the handler runs; validation failures are returned to the model as a
    string so it can correct the call.
    """

    def __init__(
        self,
        id: str,
        description: str,
        input_schema: type[BaseModel],
        handler: ToolHandler,
    ):
        """
        Initialize a tool.

        Args:
            id: Unique tool identifier (the function name the model sees)
            description: Description for LLM (what this tool does)
            input_schema: Pydantic model describing the tool's parameters
            handler: Async function receiving a ToolRunContext and the validated input
        """
        self.id = id
        self._tool_description = description
        self._input_schema_class = input_schema
        self._tool_parameters = input_schema.model_json_schema()
        self._handler = handler

    def to_llm_tool_definition(self) -> dict[str, Any]:
        """
        Convert tool to LLM function calling format.

        Returns:
            {"type": "function", "name": ..., "description": ..., "parameters": {...}}
        """
        return {
            "type": "function",
            "name": self.id,
            "description": self._tool_description,
            "parameters": self._tool_parameters,
        }

    async def invoke(self, run: ToolRunContext, arguments: dict[str, Any] | None) -> Any:
        """Validate arguments and run the handler."""
        try:
            input_obj = self._input_schema_class.model_validate(arguments or {})
        except ValidationError as e:
            return f"Invalid arguments for tool '{self.id}': {e}"
        return await self._handler(run, input_obj)
