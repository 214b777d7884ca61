"""Step execution helper for durable execution within workflows."""

from __future__ import annotations

import asyncio
import contextvars
import json
import logging
from collections.abc import Callable
from typing import Any

from opentelemetry.trace import Status, StatusCode
from pydantic import BaseModel

from ..features.tracing import (
    get_parent_span_context_from_execution_context,
    get_span_context_from_execution_context,
    get_tracer,
    set_span_context_in_execution_context,
)
from ..utils.retry import retry_with_backoff
from ..utils.serializer import deserialize, safe_serialize, schema_name_for, serialize
from .context import WorkflowContext
from .workflow import StepExecutionError, _execution_context

logger = logging.getLogger(__name__)


class Step:
    """Step execution helper - provides durable execution primitives.

    Steps are executed within a workflow context and their outputs are
    saved to avoid re-execution on workflow resume/replay.
    """

    def __init__(self, ctx: WorkflowContext):
        """Initialize Step with a WorkflowContext.

        Args:
            ctx: The workflow execution context
        """
        self.ctx = ctx

    async def _check_existing_step(self, step_key: str) -> dict[str, Any] | None:
        """
        Check for existing step output using step_key.

        Returns:
            existing_step_output or None
            - If existing_step_output is not None, the step was already executed
              and the caller should return the cached result or raise its error
        """
        return await self.ctx.step_store.get_step_output(self.ctx.execution_id, step_key)

    async def _handle_existing_step(self, existing_step: dict[str, Any]) -> Any:
        """
        Handle existing step output - either return cached result or raise error.

        Raises:
            StepExecutionError: If step previously failed
        """
        if existing_step.get("success", False):
            outputs = existing_step.get("outputs")
            if outputs is None:
                return None
            return await deserialize(outputs, existing_step.get("output_schema_name"))

        error = existing_step.get("error", {})
        if not isinstance(error, dict):
            raise StepExecutionError(str(error))

        # Rebuild the "<Type>: <message>" text so replayed failures classify like the live ones
        error_message = error.get("message", "Step execution failed")
        if error.get("type"):
            error_message = f"{error['type']}: {error_message}"
        if error.get("cause"):
            error_message = f"{error_message} (caused by {error['cause']})"
        raise StepExecutionError(f"Step execution failed on a previous run: {error_message}")

    async def _save_step_output(self, step_key: str, result: Any) -> None:
        """Save step output using step_key as the unique identifier.

        Pydantic results (and lists of them) are dumped in JSON mode and their
        import path is stored so replays get the model back, not a dict.
        """
        if isinstance(result, BaseModel):
            outputs = result.model_dump(mode="json")
        elif isinstance(result, list) and result and isinstance(result[0], BaseModel):
            outputs = [item.model_dump(mode="json") for item in result]
        else:
            outputs = result

        await self.ctx.step_store.store_step_output(
            execution_id=self.ctx.execution_id,
            step_key=step_key,
            outputs=outputs,
            error=None,
            success=True,
            output_schema_name=schema_name_for(result),
        )

    async def _save_step_output_with_error(self, step_key: str, error: Exception) -> None:
        """Save step output with error.

        The exception type and its ``__cause__`` chain are kept alongside the
        message; callers classify failures by both.
        """
        record = {"message": str(error), "type": type(error).__name__}
        causes = []
        current = error.__cause__
        while current is not None and len(causes) < 5:
            causes.append(f"{type(current).__name__}: {current}")
            current = current.__cause__
        if causes:
            record["cause"] = " <- ".join(causes)

        await self.ctx.step_store.store_step_output(
            execution_id=self.ctx.execution_id,
            step_key=step_key,
            outputs=None,
            error=record,
            success=False,
        )

    async def run(
        self,
        step_key: str,
        func: Callable,
        *args,
        max_retries: int = 2,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        **kwargs,
    ) -> Any:
        """
        Execute a callable as a durable step with retry support.

        Checks the step store for an existing result. If found, returns the
        cached result. Otherwise, executes the function with retries, saves
        the output, and returns the result.

        Args:
            step_key: Step key identifier (must be unique per execution)
            func: Callable to execute (sync or async)
            *args: Positional arguments to pass to function
            max_retries: Maximum number of retries on failure (default: 2)
            base_delay: Base delay in seconds for exponential backoff (default: 1.0)
            max_delay: Maximum delay in seconds (default: 10.0)
            **kwargs: Keyword arguments to pass to function

        Returns:
            Result of function execution

        Raises:
            StepExecutionError: If function fails after all retries
        """
        existing_step = await self._check_existing_step(step_key)
        if existing_step:
            logger.debug("Replaying step %s for execution %s", step_key, self.ctx.execution_id)
            return await self._handle_existing_step(existing_step)

        exec_context = _execution_context.get()
        parent_context = get_parent_span_context_from_execution_context(exec_context)
        tracer = get_tracer()
        func_name = func.__name__ if hasattr(func, "__name__") else str(func)

        with tracer.start_as_current_span(
            name=f"step.{step_key}",
            context=parent_context,
            attributes={
                "step.key": step_key,
                "step.function": func_name,
                "step.execution_id": self.ctx.execution_id,
                "step.max_retries": max_retries,
            },
        ) as step_span:
            # Nested steps parent on this span; restored afterwards
            old_span_context = get_span_context_from_execution_context(exec_context)
            set_span_context_in_execution_context(exec_context, step_span.get_span_context())
            try:
                step_span.set_attribute(
                    "step.input",
                    json.dumps(
                        {
                            "args": [safe_serialize(arg) for arg in args],
                            "kwargs": {k: safe_serialize(v) for k, v in kwargs.items()},
                        }
                    ),
                )

                async def _execute_func() -> Any:
                    if asyncio.iscoroutinefunction(func):
                        return await func(*args, **kwargs)
                    # Run sync function in executor with ContextVar values preserved
                    func_ctx = contextvars.copy_context()
                    loop = asyncio.get_running_loop()
                    return await loop.run_in_executor(
                        None, lambda: func_ctx.run(func, *args, **kwargs)
                    )

                try:
                    result = await retry_with_backoff(
                        _execute_func,
                        max_retries=max_retries,
                        base_delay=base_delay,
                        max_delay=max_delay,
                    )
                    serialized_result = serialize(result)

                    step_span.set_status(Status(StatusCode.OK))
                    step_span.set_attributes(
                        {
                            "step.status": "completed",
                            "step.output": json.dumps(serialized_result),
                        }
                    )

                    await self._save_step_output(step_key, result)
                    return result
                except Exception as e:
                    step_span.set_status(Status(StatusCode.ERROR, str(e)))
                    step_span.record_exception(e)

                    error_message = str(e)
                    step_span.set_attributes(
                        {
                            "step.error": json.dumps(
                                {"message": error_message, "type": type(e).__name__}
                            ),
                            "step.status": "failed",
                        }
                    )

                    await self._save_step_output_with_error(step_key, e)

                    raise StepExecutionError(
                        f"Step execution failed after {max_retries} retries: {error_message}"
                    ) from e
            finally:
                set_span_context_in_execution_context(exec_context, old_span_context)
