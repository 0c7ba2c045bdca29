"""Orchestration prompts returned to the agent after each workflow pause."""

from __future__ import annotations

import json

from workflow_checkpointing.orchestrator.metadata import (
    InterruptData,
    NodeGuidanceData,
    ToolInvocationData,
    WorkflowStateData,
)

WORKFLOW_STATE_DATA_PROPERTY = "workflowStateData"
USER_INPUT_PROPERTY = "userInput"

WORKFLOW_COMPLETE_MESSAGE = (
    "The workflow has concluded. No further workflow actions are forthcoming."
)


def _json(value: object) -> str:
    return json.dumps(value, ensure_ascii=False)


def render_delegate_prompt(
    *,
    orchestrator_tool_id: str,
    invocation: ToolInvocationData,
    workflow_state_data: WorkflowStateData,
) -> str:
    """Instruct the agent to call another tool, then come back to the orchestrator."""

    tool = invocation.llm_metadata
    return f"""
# Your Role

You are taking part in a workflow run by the `{orchestrator_tool_id}` tool, which is
the orchestrator. It is telling you what to do next: which tool to invoke, what its
input schema is, and which input values to pass.

# Your Task

Invoke the following tool:

**Tool Name**: {tool.name}
**Tool Description**: {tool.description}
**Tool Input Schema**:
```json
{_json(tool.input_schema)}
```
**Tool Input Values**:
```json
{_json(invocation.input)}
```

## Additional Input: `{WORKFLOW_STATE_DATA_PROPERTY}`

Pass `{WORKFLOW_STATE_DATA_PROPERTY}` to the tool as an additional input parameter with
exactly this value:

```json
{_json(workflow_state_data.model_dump())}
```

It is opaque workflow state. Return it, unmodified, to the `{orchestrator_tool_id}` tool
once the tool above has finished. The tool you invoke will answer with its output and
with further instructions for continuing the workflow.
"""


def _default_return_guidance(
    *,
    orchestrator_tool_id: str,
    guidance: NodeGuidanceData,
    workflow_state_data: WorkflowStateData,
) -> str:
    example_input = {
        USER_INPUT_PROPERTY: "<your result object>",
        WORKFLOW_STATE_DATA_PROPERTY: workflow_state_data.model_dump(),
    }
    example_output = ""
    if guidance.example_output:
        example_output = f"""
Example result:
```json
{guidance.example_output}
```
"""
    return f"""
# CRITICAL: REQUIRED NEXT STEP

When the task above is complete you MUST invoke the `{orchestrator_tool_id}` tool.
Pass your result as `{USER_INPUT_PROPERTY}` and pass `{WORKFLOW_STATE_DATA_PROPERTY}`
unmodified:

```json
{_json(workflow_state_data.model_dump())}
```

# OUTPUT FORMAT

Your result (`{USER_INPUT_PROPERTY}`) MUST be a JSON object conforming to this schema:

```json
{_json(guidance.result_schema)}
```
{example_output}
# EXAMPLE TOOL CALL

Call `{orchestrator_tool_id}` with:

```json
{_json(example_input)}
```
"""


def render_guidance_prompt(
    *,
    orchestrator_tool_id: str,
    guidance: NodeGuidanceData,
    workflow_state_data: WorkflowStateData,
) -> str:
    """Hand the node's task guidance to the agent directly."""

    if guidance.return_guidance is not None:
        return_section = guidance.return_guidance.replace(
            "{thread_id}", workflow_state_data.thread_id
        )
    else:
        return_section = _default_return_guidance(
            orchestrator_tool_id=orchestrator_tool_id,
            guidance=guidance,
            workflow_state_data=workflow_state_data,
        )

    return f"""
# ROLE

You are carrying out one step (`{guidance.node_id}`) of a workflow run by the
`{orchestrator_tool_id}` tool.

# TASK GUIDANCE

{guidance.task_guidance.strip()}

{return_section.strip()}
"""


def render_next_action_prompt(
    *,
    orchestrator_tool_id: str,
    data: InterruptData,
    workflow_state_data: WorkflowStateData,
) -> str:
    if isinstance(data, NodeGuidanceData):
        return render_guidance_prompt(
            orchestrator_tool_id=orchestrator_tool_id,
            guidance=data,
            workflow_state_data=workflow_state_data,
        )
    return render_delegate_prompt(
        orchestrator_tool_id=orchestrator_tool_id,
        invocation=data,
        workflow_state_data=workflow_state_data,
    )
