"""Workflow checkpointing.

Durable, resumable LangGraph workflows driven by stateless agent tool calls:
- a checkpoint saver whose whole state exports to one JSON document
- a state manager that persists it under a well-known project directory
- an orchestrator tool that resumes or starts a workflow on every call
"""

__version__ = "0.1.0"

from workflow_checkpointing.checkpointing import (
    EnvironmentMismatchError,
    InvalidCheckpointConfigError,
    JsonCheckpointSaver,
    MissingThreadIdError,
    SerializedStateError,
    WorkflowStateManager,
)
from workflow_checkpointing.config import WorkflowSettings
from workflow_checkpointing.orchestrator import (
    OrchestratorConfig,
    OrchestratorTool,
    WorkflowProtocolError,
)
from workflow_checkpointing.storage import WellKnownDirectory

__all__ = [
    "__version__",
    "EnvironmentMismatchError",
    "InvalidCheckpointConfigError",
    "JsonCheckpointSaver",
    "MissingThreadIdError",
    "OrchestratorConfig",
    "OrchestratorTool",
    "SerializedStateError",
    "WellKnownDirectory",
    "WorkflowProtocolError",
    "WorkflowSettings",
    "WorkflowStateManager",
]
