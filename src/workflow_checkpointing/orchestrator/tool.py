"""Orchestrator tool: resume-or-start control loop over a LangGraph workflow.

Every agent call is a fresh, stateless request. Progress survives between calls
because the checkpointer state is persisted through `WorkflowStateManager`
before each response, keyed by the `thread_id` the agent round-trips.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import StateGraph
from langgraph.types import Command
from pydantic import ValidationError

from workflow_checkpointing.checkpointing.state_manager import WorkflowStateManager
from workflow_checkpointing.orchestrator.metadata import (
    OrchestratorInput,
    OrchestratorOutput,
    ToolMetadata,
    WorkflowProtocolError,
    WorkflowStateData,
    parse_interrupt_data,
)
from workflow_checkpointing.orchestrator.progress import PROGRESS_REPORTER_KEY, ProgressReporter
from workflow_checkpointing.orchestrator.prompts import (
    USER_INPUT_PROPERTY,
    WORKFLOW_COMPLETE_MESSAGE,
    render_next_action_prompt,
)

logger = logging.getLogger(__name__)

THREAD_ID_PREFIX = "wf"
INTERRUPT_KEY = "__interrupt__"


def generate_thread_id() -> str:
    """Mint a session id from the clock plus a random suffix."""

    return f"{THREAD_ID_PREFIX}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


@dataclass(slots=True)
class OrchestratorConfig:
    """Orchestrator configuration.

    `workflow` is the uncompiled `StateGraph`; it is compiled on every request
    against the checkpointer for that request. Its state schema must accept a
    `user_input` key, which carries the agent's initial input.

    `state_manager` defaults to a production `WorkflowStateManager`. Pass a
    test-environment manager to keep state in memory.
    """

    tool_id: str
    title: str
    description: str
    workflow: StateGraph
    state_manager: WorkflowStateManager | None = None


def create_orchestrator_tool_metadata(config: OrchestratorConfig) -> ToolMetadata:
    return ToolMetadata(
        tool_id=config.tool_id,
        title=config.title,
        description=config.description,
        input_schema=OrchestratorInput.model_json_schema(by_alias=True),
        output_schema=OrchestratorOutput.model_json_schema(by_alias=True),
    )


class OrchestratorTool:
    """Drive a paused-or-new workflow one agent call at a time."""

    def __init__(self, config: OrchestratorConfig) -> None:
        self.config = config
        self.tool_metadata = create_orchestrator_tool_metadata(config)
        self.state_manager = config.state_manager or WorkflowStateManager(
            environment="production"
        )
        # Test mode keeps one in-memory checkpointer for the life of the tool so
        # consecutive calls see each other's progress.
        self._cached_checkpointer: BaseCheckpointSaver | None = None

    async def handle_request(
        self, raw_input: OrchestratorInput | Mapping[str, Any]
    ) -> dict[str, Any]:
        """Process one agent call and wrap the result as tool content."""

        logger.debug("Orchestrator tool called", extra={"tool_id": self.tool_metadata.tool_id})
        try:
            result = await self.process_request(raw_input)
        except Exception:
            logger.error("Error in orchestrator tool execution", exc_info=True)
            raise

        structured = result.model_dump(by_alias=True)
        return {
            "content": [{"type": "text", "text": json.dumps(structured, ensure_ascii=False)}],
            "structuredContent": structured,
        }

    async def process_request(
        self, raw_input: OrchestratorInput | Mapping[str, Any]
    ) -> OrchestratorOutput:
        parsed = self._parse_input(raw_input)
        supplied_thread_id = parsed.workflow_state_data.thread_id
        thread_id = supplied_thread_id or generate_thread_id()
        workflow_state_data = WorkflowStateData(thread_id=thread_id)

        logger.info(
            "Processing orchestrator request",
            extra={
                "thread_id": thread_id,
                "has_user_input": parsed.user_input is not None,
                "is_resumption": bool(supplied_thread_id),
            },
        )

        thread_config = self.create_thread_config(thread_id, self.get_progress_reporter())
        checkpointer = self._get_checkpointer()
        compiled = self.config.workflow.compile(checkpointer=checkpointer)

        logger.debug("Checking for interrupted workflow state", extra={"thread_id": thread_id})
        graph_state = await compiled.aget_state(thread_config)
        interrupted_task = next((task for task in graph_state.tasks if task.interrupts), None)

        if interrupted_task is not None:
            logger.info(
                "Resuming interrupted workflow",
                extra={
                    "thread_id": thread_id,
                    "task_id": interrupted_task.id,
                    "interrupts": len(interrupted_task.interrupts),
                },
            )
            result = await compiled.ainvoke(Command(resume=parsed.user_input), thread_config)
        else:
            logger.info("Starting new workflow execution", extra={"thread_id": thread_id})
            result = await compiled.ainvoke({"user_input": parsed.user_input}, thread_config)

        graph_state = await compiled.aget_state(thread_config)
        if not graph_state.next:
            self.state_manager.save_checkpointer_state(checkpointer)
            logger.info("Workflow completed", extra={"thread_id": thread_id})
            return OrchestratorOutput(orchestration_instructions_prompt=WORKFLOW_COMPLETE_MESSAGE)

        interrupts = result.get(INTERRUPT_KEY) if isinstance(result, Mapping) else None
        if not interrupts:
            logger.error(
                "Workflow paused without an interrupt payload",
                extra={"thread_id": thread_id, "next": list(graph_state.next)},
            )
            raise WorkflowProtocolError("FATAL: Unexpected workflow state without an interrupt")

        next_action = parse_interrupt_data(interrupts[0].value)
        logger.info(
            "Returning next workflow action",
            extra={"thread_id": thread_id, "mode": type(next_action).__name__},
        )
        prompt = render_next_action_prompt(
            orchestrator_tool_id=self.tool_metadata.tool_id,
            data=next_action,
            workflow_state_data=workflow_state_data,
        )

        self.state_manager.save_checkpointer_state(checkpointer)
        return OrchestratorOutput(orchestration_instructions_prompt=prompt)

    def create_thread_config(
        self, thread_id: str, progress_reporter: ProgressReporter | None = None
    ) -> dict[str, Any]:
        """LangGraph run config for a session. Subclasses may add configurable keys."""

        configurable: dict[str, Any] = {"thread_id": thread_id}
        if progress_reporter is not None:
            configurable[PROGRESS_REPORTER_KEY] = progress_reporter
        return {"configurable": configurable}

    def get_progress_reporter(self) -> ProgressReporter | None:
        """Reporter for the current request. Subclasses override to provide one."""

        return None

    def _get_checkpointer(self) -> BaseCheckpointSaver:
        if self.state_manager.environment != "test":
            return self.state_manager.create_checkpointer()
        if self._cached_checkpointer is None:
            self._cached_checkpointer = self.state_manager.create_checkpointer()
        return self._cached_checkpointer

    @staticmethod
    def _parse_input(raw_input: OrchestratorInput | Mapping[str, Any]) -> OrchestratorInput:
        if isinstance(raw_input, OrchestratorInput):
            return raw_input
        try:
            return OrchestratorInput.model_validate(raw_input)
        except ValidationError:
            logger.error(
                "Error parsing orchestrator input. Starting a new workflow.", exc_info=True
            )
            user_input = (
                raw_input.get(USER_INPUT_PROPERTY) if isinstance(raw_input, Mapping) else None
            )
            return OrchestratorInput(
                user_input=user_input if isinstance(user_input, dict) else None
            )
