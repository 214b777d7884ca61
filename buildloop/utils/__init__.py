"""Utility functions for the buildloop runtime."""

from .config import Settings, load_settings
from .retry import retry_with_backoff
from .serializer import deserialize, json_serialize, safe_serialize, serialize

__all__ = [
    "Settings",
    "load_settings",
    "retry_with_backoff",
    "serialize",
    "deserialize",
    "json_serialize",
    "safe_serialize",
]
