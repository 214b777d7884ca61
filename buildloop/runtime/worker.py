"""Worker class for executing buildloop workflows."""

import asyncio
import logging
import signal
import traceback
import uuid
from typing import Any

from dotenv import load_dotenv

from ..core.workflow import _WORKFLOW_REGISTRY, Workflow
from ..features.events import EventPayload
from ..storage.models import utcnow
from .services import Services
from .worker_server import WorkerServer

load_dotenv()
logger = logging.getLogger(__name__)


class Worker:
    """
    Buildloop worker that executes event-triggered workflows.

    The worker:
    1. Keeps a registry of workflows keyed by id
    2. Dispatches every published event to the workflows subscribed to its topic
    3. Bounds concurrent runs with a semaphore
    4. Owns the periodic sweep of expired sandbox references

    Usage:
        from buildloop import Worker, build_services, load_settings
        from buildloop.workflows import code_agent

        services = build_services(load_settings())
        worker = Worker(services=services, workflows=[code_agent])
        await worker.run()
    """

    def __init__(
        self,
        services: Services,
        workflows: list[Workflow] | None = None,
        max_concurrent_runs: int | None = None,
        port: int | None = None,
        local_mode: bool = False,
    ):
        """
        Initialize worker.

        Args:
            services: Shared stores and providers passed to every execution
            workflows: Workflows to serve (defaults to every registered workflow)
            max_concurrent_runs: Concurrency limit (defaults to the settings value)
            port: Port for the HTTP server (defaults to the settings value)
            local_mode: Bind the HTTP server to 127.0.0.1 only
        """
        self.services = services
        settings = services.settings
        self.max_concurrent_runs = max_concurrent_runs or settings.max_concurrent_runs
        self.port = port or settings.port
        self.local_mode = local_mode

        self.workflows_registry: dict[str, Workflow] = {}
        for wf in workflows if workflows is not None else _WORKFLOW_REGISTRY.values():
            self.register(wf)

        self.execution_semaphore = asyncio.Semaphore(self.max_concurrent_runs)
        self.active_executions: set[str] = set()
        self._background_tasks: set[asyncio.Task] = set()
        self._sequence_id = 0

        self.running = False
        self.worker_server = None
        self.worker_server_task: asyncio.Task | None = None

    def register(self, workflow: Workflow) -> None:
        """Add a workflow to this worker's registry."""
        self.workflows_registry[workflow.id] = workflow
        logger.debug(
            "Registered workflow %s (trigger: %s)", workflow.id, workflow.trigger_on_event
        )

    def workflows_for_topic(self, topic: str) -> list[Workflow]:
        return [wf for wf in self.workflows_registry.values() if wf.trigger_on_event == topic]

    @property
    def at_capacity(self) -> bool:
        in_flight = max(len(self.active_executions), len(self._background_tasks))
        return in_flight >= self.max_concurrent_runs

    # -- Dispatch --

    def publish(self, topic: str, data: dict[str, Any]) -> list[str]:
        """Publish an event and start every subscribed workflow in the background.

        Returns:
            Execution ids of the started runs (one per subscribed workflow)

        Raises:
            ValueError: If no workflow is subscribed to ``topic``
        """
        workflows = self.workflows_for_topic(topic)
        if not workflows:
            raise ValueError(f"No workflow is subscribed to topic '{topic}'")

        self._sequence_id += 1
        event = EventPayload(sequence_id=self._sequence_id, topic=topic, data=data)
        logger.info("Publishing event %s on %s to %d workflow(s)", event.id, topic, len(workflows))

        execution_ids = []
        for wf in workflows:
            execution_id = str(uuid.uuid4())
            task = asyncio.create_task(self._execute_in_background(wf, execution_id, event.data))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)
            execution_ids.append(execution_id)
        return execution_ids

    async def run_workflow(
        self, workflow: Workflow | str, payload: Any, execution_id: str | None = None
    ) -> Any:
        """Run a workflow to completion and return its result.

        Passing the id of an earlier execution replays its checkpointed steps.
        """
        if isinstance(workflow, str):
            wf = self.workflows_registry.get(workflow) or _WORKFLOW_REGISTRY.get(workflow)
            if wf is None:
                raise ValueError(f"Workflow {workflow} not found in registry")
            workflow = wf
        return await self._execute_workflow_with_semaphore(
            workflow, execution_id or str(uuid.uuid4()), payload
        )

    async def wait_idle(self) -> None:
        """Wait until every background run has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def _execute_in_background(self, workflow: Workflow, execution_id: str, payload: Any):
        try:
            await self._execute_workflow_with_semaphore(workflow, execution_id, payload)
        except Exception:
            # Already logged with its traceback in _execute_workflow
            logger.debug("Background execution %s ended with an error", execution_id)

    async def _execute_workflow_with_semaphore(
        self, workflow: Workflow, execution_id: str, payload: Any
    ) -> Any:
        """Execute a workflow with semaphore control for concurrency limiting."""
        # Acquire semaphore (blocks if at max concurrency)
        async with self.execution_semaphore:
            self.active_executions.add(execution_id)
            try:
                return await self._execute_workflow(workflow, execution_id, payload)
            finally:
                self.active_executions.discard(execution_id)

    async def _execute_workflow(self, workflow: Workflow, execution_id: str, payload: Any) -> Any:
        context = {
            "execution_id": execution_id,
            "step_store": self.services.step_store,
            "services": self.services,
            "retry_count": 0,
            "created_at": utcnow(),
        }
        logger.info("Executing workflow %s (execution_id=%s)", workflow.id, execution_id)
        try:
            result = await workflow._execute(context, payload)
        except Exception as e:
            logger.error(
                "Workflow %s failed (execution_id=%s): %s\n%s",
                workflow.id,
                execution_id,
                e,
                traceback.format_exc(),
            )
            raise
        logger.info("Workflow %s completed (execution_id=%s)", workflow.id, execution_id)
        return result

    # -- Lifecycle --

    async def start(self) -> None:
        """Start background duties (the expired-sandbox sweep)."""
        self.running = True
        self.services.sandbox_manager.start_sweep(self.services.settings.cleanup_interval_s)

    async def run(self):
        """Run the worker and its HTTP server (blocks until shutdown)."""
        logger.info("Starting worker...")
        logger.info("Workflows: %s", ", ".join(sorted(self.workflows_registry)))
        await self.start()

        def signal_handler(sig):
            """Handle shutdown signals."""
            logger.info("Received signal %s, shutting down...", sig)
            asyncio.create_task(self.shutdown())

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

        self.worker_server = WorkerServer(worker=self, port=self.port, local_mode=self.local_mode)
        self.worker_server_task = asyncio.create_task(self.worker_server.run())
        try:
            await self.worker_server_task
        except asyncio.CancelledError:
            logger.info("Worker server task cancelled")

    async def shutdown(self):
        """Graceful shutdown."""
        if not self.running:
            return

        logger.info("Shutting down gracefully...")
        self.running = False

        if self.worker_server:
            await self.worker_server.shutdown()

        self.services.sandbox_manager.stop_sweep()
        await self.wait_idle()
        await self.services.close()

        logger.info("Shutdown complete")
