"""Compose the agent's system prompt from the base prompt and project context."""

from ..context.builder import ProjectContext, format_files_for_prompt
from .base import PROMPT

CONTEXT_DIRECTIVES = (
    "Inspect the existing files (use readFiles) before modifying anything.",
    "Prefer incremental modifications of the existing code over regenerating it.",
    "Preserve all functionality delivered in earlier turns unless asked to remove it.",
)


def build_contextual_prompt(context: ProjectContext, base_prompt: str = PROMPT) -> str:
    """Append the project context block to ``base_prompt``.

    Without prior context the base prompt is returned unchanged.
    """
    if not context.has_context:
        return base_prompt

    directives = "\n".join(
        f"{number}. {directive}" for number, directive in enumerate(CONTEXT_DIRECTIVES, start=1)
    )

    return f"""{base_prompt}

=== PROJECT CONTEXT ===

Project summary:
{context.project_summary}

Conversation history:
{context.conversation_history}

{format_files_for_prompt(context.current_files)}

Development history:
{context.development_history}

You are continuing work on an existing project:
{directives}

=== END PROJECT CONTEXT ===
"""
