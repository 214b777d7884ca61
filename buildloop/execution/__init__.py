"""Execution framework: sandbox environments, lifecycle management and tools."""

from .environment import EnvironmentProvider, ExecutionEnvironment
from .errors import (
    GENERIC_FAILURE_MESSAGE,
    SANDBOX_EXPIRED_MESSAGE,
    SANDBOX_RETRY_HINT,
    is_sandbox_error,
)
from .sandbox_manager import (
    ProjectSandboxManager,
    is_active_sandbox,
    parse_duration,
    sync_files_to_sandbox,
)
from .sandbox_tools import sandbox_tools
from .types import E2BEnvironmentConfig, ExecResult, FileEntry, SandboxInfo

__all__ = [
    "E2BEnvironmentConfig",
    "EnvironmentProvider",
    "ExecResult",
    "ExecutionEnvironment",
    "FileEntry",
    "GENERIC_FAILURE_MESSAGE",
    "ProjectSandboxManager",
    "SANDBOX_EXPIRED_MESSAGE",
    "SANDBOX_RETRY_HINT",
    "SandboxInfo",
    "is_active_sandbox",
    "is_sandbox_error",
    "parse_duration",
    "sandbox_tools",
    "sync_files_to_sandbox",
]
