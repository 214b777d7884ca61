"""Terminal tool -- run shell commands inside the sandbox."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from ...tools.tool import Tool, ToolRunContext
from ..environment import ExecutionEnvironment
from ..errors import SANDBOX_RETRY_HINT, is_sandbox_error

logger = logging.getLogger(__name__)


class TerminalInput(BaseModel):
    """Input schema for the terminal tool."""

    command: str = Field(description="The shell command to execute")


def create_terminal_tool(get_env: Callable[[], Awaitable[ExecutionEnvironment]]) -> Tool:
    """Create the terminal tool for running shell commands.

    Errors never escape the tool: connectivity failures become a retry hint
    for the model, anything else becomes the error plus captured output.

    Args:
        get_env: Async callable that returns the run's ExecutionEnvironment.

    Returns:
        A Tool instance for terminal.
    """

    async def handler(run: ToolRunContext, input: TerminalInput) -> str:
        async def _run_command() -> str:
            buffers = {"stdout": "", "stderr": ""}

            def on_stdout(data: str) -> None:
                buffers["stdout"] += data

            def on_stderr(data: str) -> None:
                buffers["stderr"] += data

            try:
                env = await get_env()
                result = await env.run_command(
                    input.command, on_stdout=on_stdout, on_stderr=on_stderr
                )
                return result.stdout
            except Exception as e:
                logger.error(
                    "Terminal command failed: %s \nstdout: %s \nstderr: %s",
                    e,
                    buffers["stdout"],
                    buffers["stderr"],
                )
                if is_sandbox_error(e):
                    return SANDBOX_RETRY_HINT
                return f"Command failed: {e} \nstdout: {buffers['stdout']} \nstderr: {buffers['stderr']}"

        return await run.ctx.step.run(run.step_key, _run_command)

    return Tool(
        id="terminal",
        description="Use the terminal to run commands",
        input_schema=TerminalInput,
        handler=handler,
    )
