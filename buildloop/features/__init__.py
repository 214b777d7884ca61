"""Workflow triggers and tracing."""

from .events import CODE_AGENT_RUN_TOPIC, CodeAgentRunEvent, EventData, EventPayload

__all__ = ["CODE_AGENT_RUN_TOPIC", "CodeAgentRunEvent", "EventData", "EventPayload"]
