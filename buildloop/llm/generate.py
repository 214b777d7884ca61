"""Built-in LLM generation function for executing LLM API calls."""

from typing import Any

from ..core.context import WorkflowContext
from ..core.workflow import _execution_context
from ..types.types import AgentConfig
from .providers import LLMProvider


async def _llm_generate(
    ctx: WorkflowContext, provider: LLMProvider, payload: dict[str, Any]
) -> dict[str, Any]:
    """
    Durable function for LLM response generation with retry logic.

    Must be executed within a workflow execution context. Uses step_outputs for durability.

    Args:
        ctx: WorkflowContext for the current execution
        provider: Provider instance used for the call
        payload: Dictionary containing:
            - agent_config: Dict with model, tools, system_prompt, etc.
            - messages: List[Dict] - Conversation so far
            - agent_step: int - Step in agent conversation (1 = first, 2 = after tools, etc.)
            - tool_results: Optional[List[Dict]] - Tool outputs from the previous step

    Returns:
        Dictionary with LLM result containing content, tool_calls, usage, raw_output.
    """
    exec_context = _execution_context.get()
    if not exec_context or not exec_context.get("execution_id"):
        raise ValueError("_llm_generate must be executed within a workflow execution context")

    agent_config = AgentConfig.model_validate(payload.get("agent_config"))
    agent_step = payload.get("agent_step", 1)

    llm_response = await ctx.step.run(
        f"llm_generate:{agent_step}",
        provider.generate,
        messages=payload.get("messages") or [],
        model=agent_config.model,
        tools=agent_config.tools,
        temperature=agent_config.temperature,
        max_tokens=agent_config.max_output_tokens,
        top_p=agent_config.top_p,
        agent_config=agent_config.model_dump(mode="json"),
        tool_results=payload.get("tool_results"),
    )

    return {
        "status": "completed",
        "content": llm_response.content,
        "tool_calls": llm_response.tool_calls or None,
        "usage": llm_response.usage or None,
        "raw_output": llm_response.raw_output or None,
    }
