"""Runtime settings read from the environment (and an optional .env file)."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///buildloop.db"
DEFAULT_SANDBOX_TEMPLATE = "mragent-nextjs-test-2"


class Settings(BaseModel):
    """Configuration shared by the worker, the HTTP server and the CLI."""

    database_url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy async URL")
    e2b_api_key: str | None = Field(default=None, description="E2B API key")
    sandbox_template: str = Field(
        default=DEFAULT_SANDBOX_TEMPLATE, description="Template used for new sandboxes"
    )
    sandbox_timeout: str = Field(
        default="5m", description='Sandbox idle lifetime (e.g. "5m", "1h")'
    )
    preview_port: int = Field(default=3000, description="Sandbox port served as the preview")
    agent_max_iter: int = Field(default=15, description="Iteration ceiling for the agent network")
    history_limit: int = Field(default=20, description="Turns fed to the context builder")
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_base_url: str | None = Field(default=None, description="OpenAI-compatible base URL")
    model: str = Field(default="gpt-4.1", description="Model used by the coding agent")
    temperature: float | None = Field(default=0.1, description="Sampling temperature")
    cleanup_interval: str = Field(
        default="10m", description="Interval between expired-sandbox sweeps"
    )
    max_concurrent_runs: int = Field(default=10, description="Concurrent agent runs per worker")
    port: int = Field(default=8000, description="Port for the HTTP server")

    @property
    def sandbox_timeout_s(self) -> float:
        from ..execution.sandbox_manager import parse_duration

        return parse_duration(self.sandbox_timeout)

    @property
    def cleanup_interval_s(self) -> float:
        from ..execution.sandbox_manager import parse_duration

        return parse_duration(self.cleanup_interval)


def load_settings(dotenv_path: str | None = None) -> Settings:
    """Load settings from environment variables.

    A ``.env`` file is loaded first if present; variables already set in the
    process environment take precedence.
    """
    load_dotenv(dotenv_path)

    values = {
        "database_url": os.getenv("BUILDLOOP_DATABASE_URL"),
        "e2b_api_key": os.getenv("E2B_API_KEY"),
        "sandbox_template": os.getenv("BUILDLOOP_SANDBOX_TEMPLATE"),
        "sandbox_timeout": os.getenv("BUILDLOOP_SANDBOX_TIMEOUT"),
        "preview_port": os.getenv("BUILDLOOP_PREVIEW_PORT"),
        "agent_max_iter": os.getenv("BUILDLOOP_AGENT_MAX_ITER"),
        "history_limit": os.getenv("BUILDLOOP_HISTORY_LIMIT"),
        "openai_api_key": os.getenv("OPENAI_API_KEY"),
        "openai_base_url": os.getenv("OPENAI_BASE_URL"),
        "model": os.getenv("BUILDLOOP_MODEL"),
        "temperature": os.getenv("BUILDLOOP_TEMPERATURE"),
        "cleanup_interval": os.getenv("BUILDLOOP_CLEANUP_INTERVAL"),
        "max_concurrent_runs": os.getenv("BUILDLOOP_MAX_CONCURRENT_RUNS"),
        "port": os.getenv("BUILDLOOP_PORT"),
    }
    # Unset variables fall back to the model defaults
    return Settings.model_validate({k: v for k, v in values.items() if v is not None})
