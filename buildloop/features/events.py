"""Event types used to trigger workflows."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ..storage.models import utcnow

CODE_AGENT_RUN_TOPIC = "code-agent/run"


class EventData(BaseModel):
    """Event data structure for publishing events.

    Attributes:
        event_type: Type of event
        data: Event payload (dict)
    """

    event_type: str | None = None
    data: dict[str, Any]


class EventPayload(BaseModel):
    """Event delivered to event-triggered workflows.

    Attributes:
        id: Event ID (UUID string)
        sequence_id: Per-worker sequence number for ordering
        topic: Event topic
        event_type: Type of event
        data: Event payload (dict)
        created_at: Timestamp when the event was created
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    sequence_id: int = 0
    topic: str
    event_type: str | None = None
    data: dict[str, Any]
    created_at: datetime = Field(default_factory=utcnow)


class CodeAgentRunEvent(BaseModel):
    """Data carried by a ``code-agent/run`` event: one new user turn."""

    project_id: str
    value: str = Field(min_length=1, max_length=10000)

    def to_event(self) -> EventData:
        return EventData(event_type=CODE_AGENT_RUN_TOPIC, data=self.model_dump())
