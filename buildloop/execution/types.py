"""Shared types for the execution framework.

Defines command results, sandbox handles and sandbox configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# -- Input/output types -------------------------------------------------------


class ExecResult(BaseModel):
    """Result of a command execution."""

    exit_code: int = Field(description="Process exit code (0 = success)")
    stdout: str = Field(description="Standard output")
    stderr: str = Field(description="Standard error")
    duration_ms: int = Field(default=0, description="Execution duration in milliseconds")


class SandboxInfo(BaseModel):
    """Sandbox acquired for one run."""

    sandbox_id: str = Field(description="Identifier of the live sandbox")
    is_reused: bool = Field(description="True if an existing sandbox was reconnected")


class FileEntry(BaseModel):
    """A file path and its full content."""

    path: str = Field(description="File path inside the sandbox")
    content: str = Field(description="Full file content")


# -- Configuration types -------------------------------------------------------


class E2BEnvironmentConfig(BaseModel):
    """Configuration for an E2B execution environment."""

    template: str | None = Field(
        default=None, description='E2B template name (default: "mragent-nextjs-test-2")'
    )
    api_key: str | None = Field(
        default=None, description="E2B API key (defaults to E2B_API_KEY env var)"
    )
    timeout: int | None = Field(
        default=None, description="Sandbox idle timeout in seconds (default: 300)"
    )
    cwd: str | None = Field(default=None, description="Working directory inside the sandbox")
    env: dict[str, str] | None = Field(default=None, description="Environment variables")
