__version__ = "0.1.0"

# Core imports
from .agents import Agent, AgentNetwork, NetworkResult, NetworkStatus, seeding_router
from .context import ProjectContext, build_project_context, get_project_message_history
from .core.context import WorkflowContext
from .core.state import NetworkState
from .core.workflow import (
    StepExecutionError,
    Workflow,
    get_all_workflows,
    get_workflow,
    workflow,
)
from .execution import (
    ExecutionEnvironment,
    EnvironmentProvider,
    ProjectSandboxManager,
    is_sandbox_error,
    sandbox_tools,
)
from .features.events import CODE_AGENT_RUN_TOPIC, CodeAgentRunEvent
from .prompts import build_contextual_prompt
from .runtime import Services, Worker, WorkerServer, build_services
from .storage import HistoryStore, SqlHistoryStore
from .tools import Tool, ToolRunContext
from .utils.config import Settings, load_settings

__all__ = [
    "Agent",
    "AgentNetwork",
    "CODE_AGENT_RUN_TOPIC",
    "CodeAgentRunEvent",
    "EnvironmentProvider",
    "ExecutionEnvironment",
    "HistoryStore",
    "NetworkResult",
    "NetworkState",
    "NetworkStatus",
    "ProjectContext",
    "ProjectSandboxManager",
    "Services",
    "Settings",
    "SqlHistoryStore",
    "StepExecutionError",
    "Tool",
    "ToolRunContext",
    "Worker",
    "WorkerServer",
    "Workflow",
    "WorkflowContext",
    "build_contextual_prompt",
    "build_project_context",
    "build_services",
    "get_all_workflows",
    "get_project_message_history",
    "get_workflow",
    "is_sandbox_error",
    "load_settings",
    "sandbox_tools",
    "seeding_router",
    "workflow",
]
