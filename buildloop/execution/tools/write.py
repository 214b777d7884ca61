"""createOrUpdateFiles tool -- write files and record them in the run state."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from ...tools.tool import Tool, ToolRunContext
from ..environment import ExecutionEnvironment
from ..errors import SANDBOX_RETRY_HINT, is_sandbox_error
from ..types import FileEntry

logger = logging.getLogger(__name__)


class CreateOrUpdateFilesInput(BaseModel):
    """Input schema for the createOrUpdateFiles tool."""

    files: list[FileEntry] = Field(description="Files to create or overwrite")


def create_write_tool(get_env: Callable[[], Awaitable[ExecutionEnvironment]]) -> Tool:
    """Create the createOrUpdateFiles tool.

    Files are merged into the run's accumulator only when every write
    succeeded; a failed write leaves the accumulator untouched.

    Args:
        get_env: Async callable that returns the run's ExecutionEnvironment.

    Returns:
        A Tool instance for createOrUpdateFiles.
    """

    async def handler(run: ToolRunContext, input: CreateOrUpdateFilesInput) -> str:
        async def _write_files() -> dict[str, str] | str:
            try:
                updated_files = dict(run.state.files)
                env = await get_env()
                for file in input.files:
                    await env.write_file(file.path, file.content)
                    updated_files[file.path] = file.content
                return updated_files
            except Exception as e:
                logger.error("File write error: %s", e)
                if is_sandbox_error(e):
                    return SANDBOX_RETRY_HINT
                return f"Error: {e}"

        # On replay the checkpointed snapshot is merged again, rebuilding the state
        result = await run.ctx.step.run(run.step_key, _write_files)
        if isinstance(result, dict):
            run.state.files = result
            paths = ", ".join(file.path for file in input.files)
            return f"Created or updated {len(input.files)} file(s): {paths}"
        return result

    return Tool(
        id="createOrUpdateFiles",
        description="Create or update files in the sandbox",
        input_schema=CreateOrUpdateFilesInput,
        handler=handler,
    )
