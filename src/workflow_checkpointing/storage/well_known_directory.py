"""Well-known directory resolution.

All durable artefacts of workflow sessions live in one hidden directory:

    .workflow/
        workflow-state.json   exported checkpointer state
        workflow_logs.json    JSON-lines workflow log

The directory is rooted at an explicit project path when one is given, else at
the `PROJECT_PATH` override, else at the user's home directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from workflow_checkpointing.config import WorkflowSettings
from workflow_checkpointing.storage.filesystem import (
    FileSystemOperations,
    LocalFileSystemOperations,
)

logger = logging.getLogger(__name__)

WELL_KNOWN_DIR_NAME = ".workflow"


class WellKnownFile(str, Enum):
    WORKFLOW_STATE_STORE = "workflow-state.json"
    WORKFLOW_LOGS = "workflow_logs.json"


@dataclass(frozen=True, slots=True)
class FileInfo:
    name: str
    exists: bool
    path: Path


@dataclass(frozen=True, slots=True)
class DirectoryInfo:
    exists: bool
    path: Path
    files: list[FileInfo]


class WellKnownDirectory:
    """Resolve and create the well-known directory.

    Every path computation for persisted workflow artefacts goes through this
    class so that the state manager and log handlers agree on locations.
    """

    def __init__(
        self,
        project_path: Path | str | None = None,
        *,
        file_system: FileSystemOperations | None = None,
        settings: WorkflowSettings | None = None,
    ) -> None:
        self._fs: FileSystemOperations = file_system or LocalFileSystemOperations()

        if project_path is not None:
            base_dir = Path(project_path).expanduser().resolve()
        else:
            override = (settings or WorkflowSettings()).project_path
            base_dir = override.expanduser().resolve() if override else Path.home()

        self._path = base_dir / WELL_KNOWN_DIR_NAME

    @property
    def path(self) -> Path:
        return self._path

    def ensure(self) -> Path:
        """Create the directory if it is missing. Safe to call repeatedly."""

        if not self._fs.exists(self._path):
            logger.debug("Creating well-known directory", extra={"path": str(self._path)})
            self._fs.mkdir(self._path, parents=True)
        return self._path

    def file_path(self, file_name: str | WellKnownFile) -> Path:
        """Return the path of a file inside the directory, creating the directory first."""

        name = file_name.value if isinstance(file_name, WellKnownFile) else file_name
        return self.ensure() / name

    def state_store_path(self) -> Path:
        return self.file_path(WellKnownFile.WORKFLOW_STATE_STORE)

    def logs_path(self) -> Path:
        return self.file_path(WellKnownFile.WORKFLOW_LOGS)

    def exists(self) -> bool:
        return self._fs.exists(self._path)

    def info(self) -> DirectoryInfo:
        """Describe the directory and its well-known files without creating anything."""

        exists = self.exists()
        files = [
            FileInfo(
                name=member.value,
                exists=exists and self._fs.exists(self._path / member.value),
                path=self._path / member.value,
            )
            for member in WellKnownFile
        ]
        return DirectoryInfo(exists=exists, path=self._path, files=files)
