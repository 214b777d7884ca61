"""Project creation and turn submission.

Both operations write the USER turn and return the ``code-agent/run`` event
the caller should dispatch.
"""

import logging
import random

from ..features.events import CodeAgentRunEvent
from ..storage.history import HistoryStore
from ..storage.models import MessageRole, MessageType

logger = logging.getLogger(__name__)

MAX_VALUE_LENGTH = 10000

_ADJECTIVES = (
    "amber", "brave", "calm", "clever", "crisp", "eager", "fancy", "gentle", "happy",
    "jolly", "lively", "lucky", "mellow", "nimble", "proud", "quiet", "rapid", "shiny",
    "silent", "sunny", "swift", "tidy", "vivid", "witty",
)
_NOUNS = (
    "apple", "badger", "canyon", "comet", "dolphin", "falcon", "forest", "garden",
    "harbor", "island", "lantern", "meadow", "otter", "panda", "pepper", "planet",
    "river", "rocket", "sparrow", "summit", "tiger", "valley", "willow", "zebra",
)


def generate_project_name(rng: random.Random | None = None) -> str:
    """Return a two-word kebab-case name such as ``"swift-otter"``."""
    rng = rng or random.Random()
    return f"{rng.choice(_ADJECTIVES)}-{rng.choice(_NOUNS)}"


def _validate_value(value: str) -> None:
    if not value:
        raise ValueError("Value is required")
    if len(value) > MAX_VALUE_LENGTH:
        raise ValueError("Value is too long")


async def create_project(history: HistoryStore, value: str) -> CodeAgentRunEvent:
    """Create a project whose first turn is ``value``.

    Raises:
        ValueError: If ``value`` is empty or longer than 10000 characters
    """
    _validate_value(value)
    project = await history.create_project(generate_project_name())
    await history.create_message(
        project.id, role=MessageRole.USER, type=MessageType.RESULT, content=value
    )
    logger.info("Created project %s (%s)", project.id, project.name)
    return CodeAgentRunEvent(project_id=project.id, value=value)


async def submit_message(history: HistoryStore, project_id: str, value: str) -> CodeAgentRunEvent:
    """Append a USER turn to an existing project.

    Raises:
        ValueError: If ``value`` is empty or longer than 10000 characters
        ProjectNotFoundError: If the project does not exist
    """
    _validate_value(value)
    await history.get_project(project_id)
    await history.create_message(
        project_id, role=MessageRole.USER, type=MessageType.RESULT, content=value
    )
    return CodeAgentRunEvent(project_id=project_id, value=value)
