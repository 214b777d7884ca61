"""E2B execution environment.

Wraps ``e2b_code_interpreter.AsyncSandbox``. Sandboxes expire on the E2B
side after their idle timeout; this module never kills them explicitly.
"""

from __future__ import annotations

import logging
import os
import time

from e2b_code_interpreter import AsyncSandbox

from .environment import EnvironmentProvider, ExecutionEnvironment, OutputCallback
from .types import E2BEnvironmentConfig, ExecResult

logger = logging.getLogger(__name__)

# E2B's default sandbox lifetime in seconds
DEFAULT_SANDBOX_TIMEOUT_S = 300


class E2BEnvironment(ExecutionEnvironment):
    """Execution environment backed by a live E2B sandbox."""

    def __init__(self, sandbox: AsyncSandbox, config: E2BEnvironmentConfig | None = None) -> None:
        self._sandbox = sandbox
        self._config = config or E2BEnvironmentConfig()

    @property
    def sandbox_id(self) -> str:
        return self._sandbox.sandbox_id

    async def run_command(
        self,
        command: str,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
        timeout: int | None = None,
    ) -> ExecResult:
        start = time.monotonic()
        kwargs = {}
        if self._config.cwd:
            kwargs["cwd"] = self._config.cwd
        if self._config.env:
            kwargs["envs"] = self._config.env
        if timeout is not None:
            kwargs["timeout"] = timeout

        # Non-zero exits raise CommandExitException from the SDK
        result = await self._sandbox.commands.run(
            command, on_stdout=on_stdout, on_stderr=on_stderr, **kwargs
        )
        return ExecResult(
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    async def write_file(self, path: str, content: str) -> None:
        await self._sandbox.files.write(path, content)

    async def read_file(self, path: str) -> str:
        return await self._sandbox.files.read(path)

    def get_host(self, port: int) -> str:
        return self._sandbox.get_host(port)


class E2BEnvironmentProvider(EnvironmentProvider):
    """Creates and reconnects E2B sandboxes."""

    def __init__(self, config: E2BEnvironmentConfig | None = None) -> None:
        self._config = config or E2BEnvironmentConfig()
        self._api_key = self._config.api_key or os.getenv("E2B_API_KEY")

    async def create(self, template: str) -> ExecutionEnvironment:
        sandbox = await AsyncSandbox.create(
            template=template,
            timeout=self._config.timeout or DEFAULT_SANDBOX_TIMEOUT_S,
            envs=self._config.env,
            api_key=self._api_key,
        )
        logger.debug("E2B sandbox %s created from template %s", sandbox.sandbox_id, template)
        return E2BEnvironment(sandbox, self._config)

    async def connect(self, sandbox_id: str) -> ExecutionEnvironment:
        sandbox = await AsyncSandbox.connect(sandbox_id, api_key=self._api_key)
        return E2BEnvironment(sandbox, self._config)
