"""Tools callable by LLM agents."""

from .tool import Tool, ToolRunContext

__all__ = ["Tool", "ToolRunContext"]
