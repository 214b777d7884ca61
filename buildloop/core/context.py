"""Context classes for workflow execution."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..runtime.services import Services
    from ..runtime.step_store import StepStore


class WorkflowContext:
    """Context available to all workflow functions.

    Provides execution-related information and a Step helper for durable
    execution. ``services`` bundles the stores and providers the workflow
    talks to (history, sandboxes, LLM).
    """

    def __init__(
        self,
        workflow_id: str,
        execution_id: str,
        step_store: StepStore,
        services: Services | None = None,
        retry_count: int = 0,
        created_at: datetime | None = None,
    ):
        self.workflow_id = workflow_id
        self.execution_id = execution_id
        self.step_store = step_store
        self.services = services
        self.retry_count = retry_count
        self.created_at = created_at

        from .step import Step

        self.step = Step(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "retry_count": self.retry_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
