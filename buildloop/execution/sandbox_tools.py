"""Sandbox tools factory.

Creates the coding agent's toolset (terminal, createOrUpdateFiles,
readFiles). All tools share one lazily resolved handle to the run's
sandbox, obtained from the ``ProjectSandboxManager``.

Example::

    tools = sandbox_tools(manager, sandbox_info.sandbox_id)
    agent = Agent(name="code-agent", system_prompt=prompt, tools=tools, ...)
"""

from __future__ import annotations

import asyncio

from ..tools.tool import Tool
from .environment import ExecutionEnvironment
from .sandbox_manager import ProjectSandboxManager
from .tools.read import create_read_tool
from .tools.terminal import create_terminal_tool
from .tools.write import create_write_tool


def sandbox_tools(manager: ProjectSandboxManager, sandbox_id: str) -> list[Tool]:
    """Create the sandbox tools for one run.

    Args:
        manager: Manager used to resolve the sandbox handle.
        sandbox_id: Sandbox acquired for this run.
    """
    _env: list[ExecutionEnvironment] = []
    _lock = asyncio.Lock()

    async def get_env() -> ExecutionEnvironment:
        if _env:
            return _env[0]
        # Serialize resolution so parallel tool calls share one connection
        async with _lock:
            if not _env:
                _env.append(await manager.get_sandbox(sandbox_id))
            return _env[0]

    return [
        create_terminal_tool(get_env),
        create_write_tool(get_env),
        create_read_tool(get_env),
    ]
