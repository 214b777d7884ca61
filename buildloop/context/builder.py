"""Reconstructs a project's state from its message history.

Everything here except :func:`get_project_message_history` is a pure
transform over already-fetched turns.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from ..storage.history import DEFAULT_HISTORY_LIMIT, HistoryStore, MessageRecord
from ..storage.models import MessageRole, MessageType
from .classifier import KeywordProjectClassifier, ProjectClassifier

logger = logging.getLogger(__name__)

NO_PROJECT_DESCRIPTION = "No project description available."
NO_EXISTING_FILES = "No existing files in the project."
STEP_PREVIEW_CHARS = 100

_default_classifier = KeywordProjectClassifier()


class ProjectContext(BaseModel):
    """Derived (never persisted) briefing for one agent run."""

    conversation_history: str = ""
    current_files: dict[str, str] = Field(default_factory=dict)
    project_summary: str = ""
    development_history: str = ""
    has_context: bool = False


async def get_project_message_history(
    history: HistoryStore, project_id: str, limit: int = DEFAULT_HISTORY_LIMIT
) -> list[MessageRecord]:
    """Fetch the latest ``limit`` turns of a project in chronological order."""
    messages = await history.fetch(project_id, limit)
    logger.debug("Fetched %d messages for project %s", len(messages), project_id)
    return messages


def build_project_context(
    messages: list[MessageRecord], classifier: ProjectClassifier | None = None
) -> ProjectContext:
    """Build the project context from turns ordered oldest first.

    A project with zero or one turn has no prior state to build from and
    yields an empty context with ``has_context=False``.
    """
    if len(messages) <= 1:
        return ProjectContext()

    classifier = classifier or _default_classifier
    conversation_history = "\n\n".join(
        f"{msg.role.value}: {msg.content}" for msg in messages
    )

    return ProjectContext(
        conversation_history=conversation_history,
        current_files=get_latest_files(messages),
        project_summary=extract_project_summary(messages, classifier),
        development_history=extract_development_steps(messages),
        has_context=True,
    )


def _is_result_with_fragment(msg: MessageRecord) -> bool:
    return (
        msg.fragment is not None
        and msg.role == MessageRole.ASSISTANT
        and msg.type == MessageType.RESULT
    )


def get_latest_files(messages: list[MessageRecord]) -> dict[str, str]:
    """Files of the last ASSISTANT/RESULT fragment.

    Each fragment is a complete snapshot, so only the latest one counts.
    """
    for msg in reversed(messages):
        if _is_result_with_fragment(msg):
            return dict(msg.fragment.files)
    return {}


def extract_project_summary(
    messages: list[MessageRecord], classifier: ProjectClassifier | None = None
) -> str:
    classifier = classifier or _default_classifier
    user_messages = [msg for msg in messages if msg.role == MessageRole.USER]
    if not user_messages:
        return NO_PROJECT_DESCRIPTION

    first_request = user_messages[0].content
    project_type = classifier.classify(first_request)
    features = classifier.extract_features(msg.content for msg in user_messages)

    return (
        f"Project Type: {project_type}\n"
        f"Initial Request: {first_request}\n"
        f"Features Added: {', '.join(features)}"
    )


def extract_development_steps(messages: list[MessageRecord]) -> str:
    """One line per user request, and one per generated artifact."""
    steps: list[str] = []
    for index, msg in enumerate(messages):
        if msg.role == MessageRole.USER:
            preview = msg.content[:STEP_PREVIEW_CHARS]
            ellipsis = "..." if len(msg.content) > STEP_PREVIEW_CHARS else ""
            steps.append(f"Step {index // 2 + 1}: User requested - {preview}{ellipsis}")
        elif _is_result_with_fragment(msg):
            steps.append(f"  - AI generated {len(msg.fragment.files)} files with working code")
    return "\n".join(steps)


def format_files_for_prompt(files: dict[str, str]) -> str:
    if not files:
        return NO_EXISTING_FILES

    file_list = "\n".join(f"- {path}" for path in files)
    return f"Current project files:\n{file_list}\n\nTotal files: {len(files)}"
