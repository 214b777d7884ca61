"""Project context assembly from conversation history."""

from .builder import (
    ProjectContext,
    build_project_context,
    extract_development_steps,
    extract_project_summary,
    format_files_for_prompt,
    get_latest_files,
    get_project_message_history,
)
from .classifier import KeywordProjectClassifier, ProjectClassifier

__all__ = [
    "KeywordProjectClassifier",
    "ProjectClassifier",
    "ProjectContext",
    "build_project_context",
    "extract_development_steps",
    "extract_project_summary",
    "format_files_for_prompt",
    "get_latest_files",
    "get_project_message_history",
]
