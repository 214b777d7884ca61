"""FastAPI server that accepts events for a worker."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from uvicorn.config import LOGGING_CONFIG

if TYPE_CHECKING:
    from .worker import Worker

logger = logging.getLogger(__name__)


class WorkerServer:
    """FastAPI server that receives events and maintenance requests."""

    def __init__(self, worker: Worker, port: int = 8000, local_mode: bool = False):
        """
        Initialize worker server.

        Args:
            worker: Worker that runs the dispatched workflows
            port: Port to run the server on
            local_mode: Bind to 127.0.0.1 instead of all interfaces
        """
        self.worker = worker
        self.port = port
        self.local_mode = local_mode
        self.app: FastAPI | None = None
        self.server: uvicorn.Server | None = None
        self._setup_app()

    def _setup_app(self):
        """Setup FastAPI application with endpoints."""
        self.app = FastAPI(title="Buildloop Worker Server")

        @self.app.post("/events")
        async def publish_event(request: Request):
            """Accept an event and run the subscribed workflows in the background."""
            if self.worker.at_capacity:
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"error": "Worker at capacity"},
                )

            try:
                body = await request.json()
            except ValueError:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"error": "Request body must be JSON"},
                )

            topic = body.get("topic") if isinstance(body, dict) else None
            if not topic:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"error": "Missing topic"},
                )
            data = body.get("data") or {}

            logger.info("POST /events - topic=%s", topic)
            try:
                execution_ids = self.worker.publish(topic, data)
            except ValueError as e:
                return JSONResponse(
                    status_code=status.HTTP_404_NOT_FOUND, content={"error": str(e)}
                )

            return JSONResponse(
                status_code=status.HTTP_202_ACCEPTED,
                content={
                    "status": "accepted",
                    "execution_id": execution_ids[0],
                    "execution_ids": execution_ids,
                },
            )

        @self.app.post("/sandboxes/cleanup")
        async def cleanup_sandboxes():
            """Clear sandbox references that are past their expiry."""
            cleared = await self.worker.services.sandbox_manager.cleanup_expired_sandboxes()
            return {"cleared": cleared}

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "status": "healthy",
                "current_executions": len(self.worker.active_executions),
                "max_concurrent_runs": self.worker.max_concurrent_runs,
            }

    async def run(self):
        """Run the FastAPI server."""
        if not self.app:
            raise RuntimeError("FastAPI app not initialized")

        host = "127.0.0.1" if self.local_mode else "0.0.0.0"

        # Route module loggers (using __name__) through uvicorn's handlers
        logging_config = copy.deepcopy(LOGGING_CONFIG)
        if "" not in logging_config["loggers"]:
            logging_config["loggers"][""] = {}
        logging_config["loggers"][""].update(
            {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False,
            }
        )
        # Silence per-request logs from the HTTP clients used by openai and e2b
        logging_config["loggers"]["httpx"] = {
            "handlers": ["default"],
            "level": "WARNING",
            "propagate": False,
        }

        config = uvicorn.Config(
            self.app,
            host=host,
            port=self.port,
            log_level="info",
            log_config=logging_config,
        )
        self.server = uvicorn.Server(config)
        await self.server.serve()

    async def shutdown(self):
        """Shutdown the server gracefully."""
        if self.server:
            self.server.should_exit = True
