#!/usr/bin/env python3
"""Resumable workflow example.

This drives a two-step LangGraph workflow through `OrchestratorTool` the way an
agent would, one stateless call at a time:

* load settings from `.env`
* start (or resume) a workflow session
* persist the session to `<project>/.workflow/workflow-state.json`

Run it once to start a session, then again with `--thread-id` and `--input`
to resume it, even from a new process.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from typing import Any, TypedDict

from langgraph.graph import END, START, StateGraph

from workflow_checkpointing import OrchestratorConfig, OrchestratorTool, WorkflowStateManager
from workflow_checkpointing.config import WorkflowSettings
from workflow_checkpointing.logging import configure_workflow_logging
from workflow_checkpointing.orchestrator import NodeGuidanceData, interrupt_with


class ReviewState(TypedDict, total=False):
    user_input: dict[str, Any] | None
    summary: dict[str, Any] | None
    verdict: dict[str, Any] | None


def summarize(state: ReviewState) -> dict[str, Any]:
    summary = interrupt_with(
        NodeGuidanceData(
            node_id="summarize",
            task_guidance="Summarize the pending change in one paragraph.",
            result_schema={"type": "object", "properties": {"summary": {"type": "string"}}},
        )
    )
    return {"summary": summary}


def review(state: ReviewState) -> dict[str, Any]:
    verdict = interrupt_with(
        NodeGuidanceData(
            node_id="review",
            task_guidance=f"Approve or reject this change: {json.dumps(state.get('summary'))}",
            result_schema={"type": "object", "properties": {"approved": {"type": "boolean"}}},
        )
    )
    return {"verdict": verdict}


def build_workflow() -> StateGraph:
    graph = StateGraph(ReviewState)
    graph.add_node("summarize", summarize)
    graph.add_node("review", review)
    graph.add_edge(START, "summarize")
    graph.add_edge("summarize", "review")
    graph.add_edge("review", END)
    return graph


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start or resume a workflow session.")
    parser.add_argument("--thread-id", default="", help="Session to resume (omit to start one)")
    parser.add_argument("--input", default=None, help="JSON object passed as userInput")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace, settings: WorkflowSettings) -> None:
    tool = OrchestratorTool(
        OrchestratorConfig(
            tool_id="review-orchestrator",
            title="Review Orchestrator",
            description="Summarizes and reviews a change",
            workflow=build_workflow(),
            state_manager=WorkflowStateManager.from_settings(settings),
        )
    )
    user_input = json.loads(args.input) if args.input else None
    response = await tool.handle_request(
        {"userInput": user_input, "workflowStateData": {"thread_id": args.thread_id}}
    )
    print(response["structuredContent"]["orchestrationInstructionsPrompt"])


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = WorkflowSettings()
    configure_workflow_logging(settings)

    asyncio.run(_run(args, settings))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
