"""Sandbox tool factories for execution environments."""

from .read import create_read_tool
from .terminal import create_terminal_tool
from .write import create_write_tool

__all__ = [
    "create_terminal_tool",
    "create_read_tool",
    "create_write_tool",
]
