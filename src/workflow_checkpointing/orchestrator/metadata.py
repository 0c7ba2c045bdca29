"""Wire shapes exchanged with the external agent and with workflow nodes.

Workflow nodes pause by raising a LangGraph interrupt whose value is one of:

- `ToolInvocationData`: delegate mode, "call this other tool with this input"
- `NodeGuidanceData`:   direct guidance mode, "here is what to do, then report back"

Interrupt values are persisted inside checkpoints, so they travel as plain
dicts; `interrupt_with()` and `parse_interrupt_data()` convert at the edges.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from langgraph.types import interrupt
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class WorkflowProtocolError(RuntimeError):
    """Raised when the workflow engine breaks the pause/resume contract."""


class WorkflowStateData(BaseModel):
    """Opaque session state round-tripped by the agent between tool calls."""

    thread_id: str = Field(default="", description="Unique identifier for the workflow session")


class OrchestratorInput(BaseModel):
    """Orchestrator tool input.

    For initial calls `workflowStateData` is omitted (or carries an empty
    thread id). For resumption calls it carries the thread id from the previous
    response and `userInput` holds the previous tool's structured output.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_input: dict[str, Any] | None = Field(default=None, alias="userInput")
    workflow_state_data: WorkflowStateData = Field(
        default_factory=WorkflowStateData,
        alias="workflowStateData",
        description=(
            "Opaque workflow state data. Do not populate unless explicitly instructed to do so."
        ),
    )


class OrchestratorOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    orchestration_instructions_prompt: str = Field(
        alias="orchestrationInstructionsPrompt",
        description="The prompt describing the next workflow action for the LLM to execute.",
    )


class LlmToolMetadata(BaseModel):
    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=dict, description="JSON schema of the tool input"
    )


class ToolInvocationData(BaseModel):
    """Delegate mode: the agent should invoke another tool."""

    input: dict[str, Any] = Field(default_factory=dict)
    llm_metadata: LlmToolMetadata


class NodeGuidanceData(BaseModel):
    """Direct guidance mode: the orchestrator hands the task guidance to the agent inline.

    `return_guidance` replaces the default "return to the orchestrator"
    instructions; `{thread_id}` in it is substituted with the session id.
    """

    node_id: str
    task_guidance: str
    result_schema: dict[str, Any] = Field(default_factory=dict)
    example_output: str | None = None
    return_guidance: str | None = None


InterruptData = ToolInvocationData | NodeGuidanceData

_GUIDANCE_KEYS = frozenset({"node_id", "task_guidance"})


def parse_interrupt_data(value: object) -> InterruptData:
    """Interpret an interrupt value produced by a workflow node."""

    if isinstance(value, ToolInvocationData | NodeGuidanceData):
        return value
    if not isinstance(value, Mapping):
        raise WorkflowProtocolError(
            f"FATAL: Unsupported interrupt payload type: {type(value).__name__}"
        )
    try:
        if _GUIDANCE_KEYS <= value.keys():
            return NodeGuidanceData.model_validate(value)
        return ToolInvocationData.model_validate(value)
    except ValidationError as e:
        raise WorkflowProtocolError(f"FATAL: Malformed interrupt payload: {e}") from e


def interrupt_with(data: InterruptData) -> Any:
    """Pause the running node with `data`; returns the resume value once resumed."""

    return interrupt(data.model_dump(mode="json"))


@dataclass(frozen=True, slots=True)
class ToolMetadata:
    """Registration metadata of a tool exposed to the agent."""

    tool_id: str
    title: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)
    output_schema: dict[str, Any] = field(default_factory=dict)
