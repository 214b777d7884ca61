"""Project classification used to summarise a project's history.

The context builder only depends on the :class:`ProjectClassifier` protocol;
:class:`KeywordProjectClassifier` is the default keyword-table implementation.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

DEFAULT_PROJECT_TYPE = "Web Application"
DEFAULT_FEATURE = "Initial Implementation"

# (keywords, category). First match wins.
PROJECT_TYPE_RULES: list[tuple[tuple[str, ...], str]] = [
    (("netflix", "movie", "streaming"), "Streaming/Media Application"),
    (("dashboard", "admin"), "Admin Dashboard"),
    (("kanban", "todo", "task"), "Task Management Application"),
    (("blog", "cms"), "Content Management System"),
    (("ecommerce", "shop", "store"), "E-commerce Application"),
    (("chat", "messaging"), "Communication Application"),
    (("portfolio", "landing"), "Portfolio/Landing Page"),
]

# Only requests that add or create something contribute features
FEATURE_TRIGGERS: tuple[str, ...] = ("add", "create")

# (keywords, label). Every matching rule contributes its label.
FEATURE_RULES: list[tuple[tuple[str, ...], str]] = [
    (("page",), "New Page"),
    (("component",), "New Component"),
    (("feature",), "New Feature"),
    (("login", "auth"), "Authentication"),
    (("database", "api"), "Backend/API"),
    (("style", "theme"), "Styling/Theme"),
]


@runtime_checkable
class ProjectClassifier(Protocol):
    """Infers a project's category and feature list from user requests."""

    def classify(self, text: str) -> str:
        """Return the project category for a request."""
        ...

    def extract_features(self, texts: Iterable[str]) -> list[str]:
        """Return the feature labels requested across user turns, in order."""
        ...


class KeywordProjectClassifier:
    """Case-insensitive substring matching against fixed keyword tables."""

    def __init__(
        self,
        project_type_rules: list[tuple[tuple[str, ...], str]] | None = None,
        feature_rules: list[tuple[tuple[str, ...], str]] | None = None,
        default_project_type: str = DEFAULT_PROJECT_TYPE,
        default_feature: str = DEFAULT_FEATURE,
    ):
        self.project_type_rules = project_type_rules or PROJECT_TYPE_RULES
        self.feature_rules = feature_rules or FEATURE_RULES
        self.default_project_type = default_project_type
        self.default_feature = default_feature

    def classify(self, text: str) -> str:
        request = text.lower()
        for keywords, category in self.project_type_rules:
            if any(keyword in request for keyword in keywords):
                return category
        return self.default_project_type

    def extract_features(self, texts: Iterable[str]) -> list[str]:
        features: list[str] = []
        for text in texts:
            content = text.lower()
            if not any(trigger in content for trigger in FEATURE_TRIGGERS):
                continue
            for keywords, label in self.feature_rules:
                if any(keyword in content for keyword in keywords):
                    features.append(label)
        return features or [self.default_feature]
