"""readFiles tool -- read file contents from the sandbox."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from ...tools.tool import Tool, ToolRunContext
from ..environment import ExecutionEnvironment
from ..errors import SANDBOX_RETRY_HINT, is_sandbox_error

logger = logging.getLogger(__name__)


class ReadFilesInput(BaseModel):
    """Input schema for the readFiles tool."""

    files: list[str] = Field(description="Paths of the files to read")


def create_read_tool(get_env: Callable[[], Awaitable[ExecutionEnvironment]]) -> Tool:
    """Create the readFiles tool.

    Args:
        get_env: Async callable that returns the run's ExecutionEnvironment.

    Returns:
        A Tool instance for readFiles. Its result is a JSON list of
        ``{"path", "content"}`` objects, or an error string.
    """

    async def handler(run: ToolRunContext, input: ReadFilesInput) -> str:
        async def _read_files() -> str:
            try:
                env = await get_env()
                contents = []
                for path in input.files:
                    content = await env.read_file(path)
                    contents.append({"path": path, "content": content})
                return json.dumps(contents)
            except Exception as e:
                logger.error("File read error: %s", e)
                if is_sandbox_error(e):
                    return SANDBOX_RETRY_HINT
                return f"Error reading files: {e}"

        return await run.ctx.step.run(run.step_key, _read_files)

    return Tool(
        id="readFiles",
        description="Read files from the sandbox",
        input_schema=ReadFilesInput,
        handler=handler,
    )
