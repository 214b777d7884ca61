"""Writes the single assistant turn that closes every agent run."""

import logging

from ..execution.errors import GENERIC_FAILURE_MESSAGE, SANDBOX_EXPIRED_MESSAGE
from ..storage.history import FragmentRecord, HistoryStore, MessageRecord
from ..storage.models import MessageRole, MessageType

logger = logging.getLogger(__name__)

FRAGMENT_TITLE = "Fragment"


async def save_result(
    history: HistoryStore,
    project_id: str,
    summary: str,
    sandbox_url: str,
    files: dict[str, str],
) -> MessageRecord:
    """Persist a successful run: the summary plus a fragment with the full snapshot."""
    message = await history.create_message(
        project_id,
        role=MessageRole.ASSISTANT,
        type=MessageType.RESULT,
        content=summary,
        fragment=FragmentRecord(sandbox_url=sandbox_url, title=FRAGMENT_TITLE, files=files),
    )
    logger.info("Saved result for project %s (%d files)", project_id, len(files))
    return message


async def save_error(history: HistoryStore, project_id: str) -> MessageRecord:
    """Persist a run that ended without a summary or without files."""
    logger.warning("Run for project %s produced no usable result", project_id)
    return await history.create_message(
        project_id,
        role=MessageRole.ASSISTANT,
        type=MessageType.ERROR,
        content=GENERIC_FAILURE_MESSAGE,
    )


async def save_sandbox_error(history: HistoryStore, project_id: str) -> MessageRecord:
    """Persist a run that was cut short by a lost sandbox connection."""
    logger.warning("Sandbox lost during run for project %s", project_id)
    return await history.create_message(
        project_id,
        role=MessageRole.ASSISTANT,
        type=MessageType.ERROR,
        content=SANDBOX_EXPIRED_MESSAGE,
    )
