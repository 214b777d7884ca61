"""Durable storage for projects, turns, fragments and step outputs."""

from .history import (
    FragmentRecord,
    HistoryStore,
    MessageRecord,
    ProjectNotFoundError,
    ProjectRecord,
    SandboxRef,
    SqlHistoryStore,
)
from .models import MessageRole, MessageType, create_engine, init_db, utcnow

__all__ = [
    "FragmentRecord",
    "HistoryStore",
    "MessageRecord",
    "MessageRole",
    "MessageType",
    "ProjectNotFoundError",
    "ProjectRecord",
    "SandboxRef",
    "SqlHistoryStore",
    "create_engine",
    "init_db",
    "utcnow",
]
