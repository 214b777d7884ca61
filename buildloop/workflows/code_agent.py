"""The code-agent workflow: one durable run per user turn."""

import logging
from typing import Any

from ..agents import Agent, AgentNetwork, seeding_router
from ..context.builder import build_project_context, get_project_message_history
from ..core.context import WorkflowContext
from ..core.state import NetworkState
from ..core.workflow import workflow
from ..execution.errors import is_sandbox_error
from ..execution.sandbox_tools import sandbox_tools
from ..features.events import CODE_AGENT_RUN_TOPIC, CodeAgentRunEvent
from ..prompts import build_contextual_prompt
from .persister import FRAGMENT_TITLE, save_error, save_result, save_sandbox_error

logger = logging.getLogger(__name__)


@workflow(
    id="code-agent",
    description="Builds and iterates on a project inside its sandbox",
    trigger_on_event=CODE_AGENT_RUN_TOPIC,
)
async def code_agent(ctx: WorkflowContext, payload: CodeAgentRunEvent) -> dict[str, Any]:
    services = ctx.services
    if services is None:
        raise ValueError("code-agent requires services in the execution context")

    history = services.history
    manager = services.sandbox_manager
    settings = services.settings
    project_id = payload.project_id

    async def _build_context():
        messages = await get_project_message_history(
            history, project_id, limit=settings.history_limit
        )
        return build_project_context(messages, services.classifier)

    context = await ctx.step.run("build-context", _build_context)

    async def _get_or_create_sandbox():
        if context.has_context:
            previous_files = context.current_files
        else:
            previous_files = await history.fetch_latest_fragment_files(project_id)
        return await manager.get_or_create_project_sandbox(project_id, previous_files)

    sandbox_info = await ctx.step.run("get-or-create-sandbox", _get_or_create_sandbox)
    logger.info(
        "Using sandbox %s (reused: %s) for project %s",
        sandbox_info.sandbox_id,
        sandbox_info.is_reused,
        project_id,
    )

    agent = Agent(
        name="code-agent",
        description="An expert coding agent",
        system_prompt=build_contextual_prompt(context),
        provider=services.llm,
        tools=sandbox_tools(manager, sandbox_info.sandbox_id),
        model=settings.model,
        temperature=settings.temperature,
    )
    network = AgentNetwork(
        name="coding-agent-network",
        agents=[agent],
        router=seeding_router(agent, context.current_files if context.has_context else None),
        max_iter=settings.agent_max_iter,
    )

    state = NetworkState()
    try:
        await network.run(ctx, payload.value, state)
    except Exception as e:
        if not is_sandbox_error(e):
            raise
        logger.error("Agent execution failed on a lost sandbox: %s", e)
        await ctx.step.run("save-sandbox-error", save_sandbox_error, history, project_id)
        return {"url": None, "title": FRAGMENT_TITLE, "files": state.files, "summary": None}

    async def _get_sandbox_url() -> str:
        sandbox = await manager.get_sandbox(sandbox_info.sandbox_id)
        return f"https://{sandbox.get_host(settings.preview_port)}"

    if state.is_error:
        await ctx.step.run("save-result", save_error, history, project_id)
        return {"url": None, "title": FRAGMENT_TITLE, "files": state.files, "summary": state.summary}

    sandbox_url = await ctx.step.run("get-sandbox-url", _get_sandbox_url)
    await ctx.step.run(
        "save-result", save_result, history, project_id, state.summary, sandbox_url, state.files
    )

    return {
        "url": sandbox_url,
        "title": FRAGMENT_TITLE,
        "files": state.files,
        "summary": state.summary,
    }
