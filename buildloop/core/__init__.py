"""Durable workflow primitives."""

from .context import WorkflowContext
from .state import NetworkState
from .step import Step
from .workflow import StepExecutionError, Workflow, get_all_workflows, get_workflow, workflow

__all__ = [
    "NetworkState",
    "Step",
    "StepExecutionError",
    "Workflow",
    "WorkflowContext",
    "get_all_workflows",
    "get_workflow",
    "workflow",
]
