"""Agents and the agent network."""

from .agent import COMPLETION_SENTINEL, Agent, AgentIteration, last_assistant_text_message_content
from .network import AgentNetwork, NetworkResult, NetworkStatus, Router, seeding_router

__all__ = [
    "Agent",
    "AgentIteration",
    "AgentNetwork",
    "COMPLETION_SENTINEL",
    "NetworkResult",
    "NetworkStatus",
    "Router",
    "last_assistant_text_message_content",
    "seeding_router",
]
