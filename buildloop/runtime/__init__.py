"""Runtime: services wiring, step checkpoints, the worker and its HTTP server."""

from .services import Services, build_services
from .step_store import InMemoryStepStore, SqlStepStore, StepStore
from .worker import Worker
from .worker_server import WorkerServer

__all__ = [
    "InMemoryStepStore",
    "Services",
    "SqlStepStore",
    "StepStore",
    "Worker",
    "WorkerServer",
    "build_services",
]
