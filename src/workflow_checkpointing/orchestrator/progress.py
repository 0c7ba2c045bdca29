"""Progress reporting for long-running workflow nodes.

The orchestrator places a reporter in the run config under
`configurable["progress_reporter"]`; nodes that accept a `config` argument can
use it to keep the calling agent informed.
"""

from __future__ import annotations

from typing import Protocol

from langchain_core.runnables import RunnableConfig

PROGRESS_REPORTER_KEY = "progress_reporter"


class ProgressReporter(Protocol):
    def report(
        self, progress: float, total: float | None = None, message: str | None = None
    ) -> None: ...


def get_progress_reporter(config: RunnableConfig | None) -> ProgressReporter | None:
    """Return the reporter carried by a node's run config, or None."""

    if not config:
        return None
    return (config.get("configurable") or {}).get(PROGRESS_REPORTER_KEY)
