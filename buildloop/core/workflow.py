from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from opentelemetry.trace import Status, StatusCode
from pydantic import BaseModel

from ..features.tracing import (
    create_context_with_trace_id,
    generate_trace_id_from_execution_id,
    get_tracer,
)
from .context import WorkflowContext

logger = logging.getLogger(__name__)

# Global registry of workflows
_WORKFLOW_REGISTRY: dict[str, Workflow] = {}

# Context variables for tracking execution state
_execution_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "execution_context", default=None
)


class StepExecutionError(Exception):
    """
    Exception raised when a step fails and the workflow must fail.
    """

    def __init__(self, reason: str | None = None):
        self.reason = reason
        super().__init__(reason)


class Workflow:
    """A durable function triggered directly or by events on a topic."""

    def __init__(
        self,
        id: str,
        func: Callable,
        description: str | None = None,
        trigger_on_event: str | None = None,
        payload_schema_class: type[BaseModel] | None = None,
    ):
        self.id = id
        self.description = description
        self.func = func
        self.is_async = asyncio.iscoroutinefunction(func)
        self.trigger_on_event = trigger_on_event

        params = list(inspect.signature(func).parameters.values())
        self.has_payload_param = len(params) >= 2
        self._payload_schema_class = payload_schema_class
        if self.has_payload_param and self._payload_schema_class is None:
            annotation = params[1].annotation
            if isinstance(annotation, str):
                # Resolve forward references in the function's module
                func_module = inspect.getmodule(func)
                if func_module:
                    annotation = func_module.__dict__.get(annotation, annotation)
            if inspect.isclass(annotation) and issubclass(annotation, BaseModel):
                self._payload_schema_class = annotation

    def _prepare_payload(self, payload: Any) -> Any:
        if not self.has_payload_param or self._payload_schema_class is None:
            return payload
        if isinstance(payload, self._payload_schema_class):
            return payload
        if isinstance(payload, dict):
            try:
                return self._payload_schema_class.model_validate(payload)
            except Exception as e:
                raise ValueError(
                    f"Invalid payload for workflow '{self.id}': failed to "
                    f"validate against {self._payload_schema_class.__name__}: {e}"
                ) from e
        raise ValueError(
            f"Invalid payload for workflow '{self.id}': "
            f"expected {self._payload_schema_class.__name__} or dict, "
            f"got {type(payload).__name__}"
        )

    async def _execute(self, context: dict[str, Any], payload: Any) -> Any:
        """Execute the workflow with the given payload and checkpointing.

        ``context`` carries the execution id, the step store and the shared
        services; re-executing with the same execution id replays completed
        steps from the store.
        """
        workflow_ctx = WorkflowContext(
            workflow_id=self.id,
            execution_id=str(context["execution_id"]),
            step_store=context["step_store"],
            services=context.get("services"),
            retry_count=int(context.get("retry_count") or 0),
            created_at=context.get("created_at"),
        )
        prepared_payload = self._prepare_payload(payload)
        return await self._execute_internal(workflow_ctx, prepared_payload)

    async def _execute_internal(self, ctx: WorkflowContext, payload: Any) -> Any:
        """Run the workflow function inside a root span and execution context."""
        trace_id = generate_trace_id_from_execution_id(ctx.execution_id)
        parent_context = create_context_with_trace_id(trace_id)

        tracer = get_tracer()
        with tracer.start_as_current_span(
            name=f"workflow.{ctx.workflow_id}",
            context=parent_context,
            attributes={
                "workflow.id": ctx.workflow_id,
                "workflow.execution_id": ctx.execution_id,
                "workflow.retry_count": ctx.retry_count,
            },
        ) as span:
            exec_context = {
                "execution_id": ctx.execution_id,
                "workflow_id": ctx.workflow_id,
                "_otel_span_context": span.get_span_context(),
            }
            token = _execution_context.set(exec_context)
            try:
                if self.has_payload_param:
                    args = (ctx, payload)
                else:
                    args = (ctx,)
                if self.is_async:
                    result = await self.func(*args)
                else:
                    result = self.func(*args)
                span.set_status(Status(StatusCode.OK))
                return result
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                raise
            finally:
                _execution_context.reset(token)


def workflow(
    id: str | None = None,
    description: str | None = None,
    trigger_on_event: str | None = None,
):
    """
    Decorator to register a durable workflow.

    The decorated function takes ``(ctx: WorkflowContext, payload)``. When
    ``trigger_on_event`` is set, the worker runs the workflow for every event
    published on that topic.

    Example:
        @workflow(id="code-agent", trigger_on_event="code-agent/run")
        async def code_agent(ctx: WorkflowContext, payload: CodeAgentRunEvent):
            ...
    """

    def decorator(func: Callable) -> Workflow:
        params = list(inspect.signature(func).parameters.values())
        if not params:
            raise TypeError(
                f"Workflow function '{func.__name__}' must accept a WorkflowContext "
                f"as its first parameter"
            )

        workflow_id = id or func.__name__
        wf = Workflow(
            id=workflow_id,
            func=func,
            description=description,
            trigger_on_event=trigger_on_event,
        )
        _WORKFLOW_REGISTRY[workflow_id] = wf
        return wf

    return decorator


def get_workflow(workflow_id: str) -> Workflow | None:
    """Get a workflow from the registry by ID."""
    return _WORKFLOW_REGISTRY.get(workflow_id)


def get_all_workflows() -> dict[str, Workflow]:
    """Get all registered workflows."""
    return _WORKFLOW_REGISTRY.copy()
