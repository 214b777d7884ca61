"""Abstract interfaces for execution environments.

All sandbox tools operate against :class:`ExecutionEnvironment`. Sandboxes
are created and reconnected through an :class:`EnvironmentProvider`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from .types import ExecResult

OutputCallback = Callable[[str], None]


class ExecutionEnvironment(ABC):
    """Handle to one remote, time-limited sandbox."""

    @property
    @abstractmethod
    def sandbox_id(self) -> str:
        """Opaque identifier used to reconnect to the sandbox."""
        ...

    @abstractmethod
    async def run_command(
        self,
        command: str,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
        timeout: int | None = None,
    ) -> ExecResult:
        """Execute a shell command, streaming output chunks to the callbacks.

        Raises on a non-zero exit code as well as on connectivity failures.
        """
        ...

    @abstractmethod
    async def write_file(self, path: str, content: str) -> None:
        """Write content to a file, creating parent directories as needed."""
        ...

    @abstractmethod
    async def read_file(self, path: str) -> str:
        """Read a file's contents as UTF-8 text."""
        ...

    @abstractmethod
    def get_host(self, port: int) -> str:
        """Public hostname mapped to an internal port."""
        ...


class EnvironmentProvider(ABC):
    """Creates new sandboxes and reconnects to existing ones."""

    @abstractmethod
    async def create(self, template: str) -> ExecutionEnvironment:
        """Create a brand-new sandbox from a template."""
        ...

    @abstractmethod
    async def connect(self, sandbox_id: str) -> ExecutionEnvironment:
        """Connect to an existing sandbox. Raises if it is gone or unreachable."""
        ...
