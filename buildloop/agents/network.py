"""Agent network: a bounded router-driven loop over agents sharing one state."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from ..core.context import WorkflowContext
from ..core.state import NetworkState
from ..types.types import Step
from .agent import Agent

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 15

# Called before every iteration with the state and the iterations run so far;
# returns the next agent, or None when the network is done.
Router = Callable[[NetworkState, int], "Agent | None"]


class NetworkStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    EXHAUSTED = "exhausted"


class NetworkResult(BaseModel):
    """Final outcome of a network run."""

    status: NetworkStatus
    iterations: int
    state: NetworkState
    steps: list[Step] = []


def seeding_router(agent: Agent, seed_files: dict[str, str] | None = None) -> Router:
    """Router for a single-agent network.

    Before each decision the state is seeded once with ``seed_files``; the
    agent is returned until a summary has been recorded.
    """

    def route(state: NetworkState, iteration: int) -> Agent | None:
        if seed_files and not state.seeded:
            state.merge_files(seed_files)
            state.seeded = True
        if state.summary:
            return None
        return agent

    return route


class AgentNetwork:
    """
    Runs agents chosen by a router until it returns None or ``max_iter`` is hit.

    States move RUNNING -> COMPLETE (router returned None) or
    RUNNING -> EXHAUSTED (iteration ceiling reached). The conversation and
    pending tool outputs are carried from one iteration to the next.
    """

    def __init__(
        self,
        name: str,
        agents: list[Agent],
        router: Router | None = None,
        max_iter: int = DEFAULT_MAX_ITER,
    ):
        if not agents:
            raise ValueError("AgentNetwork requires at least one agent")
        if max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {max_iter}")
        self.name = name
        self.agents = agents
        self.max_iter = max_iter
        self.router = router or seeding_router(agents[0])

    async def run(
        self, ctx: WorkflowContext, input: str, state: NetworkState | None = None
    ) -> NetworkResult:
        """Drive the network for one user request.

        Args:
            ctx: Workflow context; every model call and tool call is a durable step
            input: The user's request
            state: State owned by this run (a fresh one is created if omitted)
        """
        state = state if state is not None else NetworkState()
        messages: list[dict[str, Any]] = [{"role": "user", "content": input}]
        tool_results: list[dict[str, Any]] | None = None
        steps: list[Step] = []
        iteration = 0
        status = NetworkStatus.RUNNING

        while status == NetworkStatus.RUNNING:
            agent = self.router(state, iteration)
            if agent is None:
                status = NetworkStatus.COMPLETE
                break
            if iteration >= self.max_iter:
                status = NetworkStatus.EXHAUSTED
                break

            iteration += 1
            logger.debug("Network %s iteration %d: agent %s", self.name, iteration, agent.name)
            outcome = await agent.run(ctx, state, messages, tool_results, iteration)
            messages = outcome.messages
            tool_results = outcome.tool_results
            steps.append(outcome.step)

        if status == NetworkStatus.EXHAUSTED:
            logger.warning(
                "Network %s exhausted after %d iterations without completing", self.name, iteration
            )
        else:
            logger.info("Network %s completed after %d iterations", self.name, iteration)

        return NetworkResult(status=status, iterations=iteration, state=state, steps=steps)
