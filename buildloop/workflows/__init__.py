"""Workflows and the procedures that trigger them."""

from .code_agent import code_agent
from .persister import save_error, save_result, save_sandbox_error
from .projects import create_project, generate_project_name, submit_message

__all__ = [
    "code_agent",
    "create_project",
    "generate_project_name",
    "save_error",
    "save_result",
    "save_sandbox_error",
    "submit_message",
]
