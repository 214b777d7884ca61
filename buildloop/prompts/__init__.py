"""Prompts for the coding agent."""

from .base import PROMPT
from .composer import CONTEXT_DIRECTIVES, build_contextual_prompt

__all__ = ["CONTEXT_DIRECTIVES", "PROMPT", "build_contextual_prompt"]
