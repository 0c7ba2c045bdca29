"""Orchestrator package initialization."""

from workflow_checkpointing.orchestrator.metadata import (
    LlmToolMetadata,
    NodeGuidanceData,
    OrchestratorInput,
    OrchestratorOutput,
    ToolInvocationData,
    WorkflowProtocolError,
    WorkflowStateData,
    interrupt_with,
)
from workflow_checkpointing.orchestrator.progress import ProgressReporter, get_progress_reporter
from workflow_checkpointing.orchestrator.tool import OrchestratorConfig, OrchestratorTool

__all__ = [
    "LlmToolMetadata",
    "NodeGuidanceData",
    "OrchestratorConfig",
    "OrchestratorInput",
    "OrchestratorOutput",
    "OrchestratorTool",
    "ProgressReporter",
    "ToolInvocationData",
    "WorkflowProtocolError",
    "WorkflowStateData",
    "get_progress_reporter",
    "interrupt_with",
]
