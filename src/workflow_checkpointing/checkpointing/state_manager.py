"""Workflow state persistence and checkpointer lifecycle.

The manager decides which checkpointer a workflow runs against and whether its
state ever touches disk:

- "test":       a fresh `InMemorySaver`, never persisted
- "production": a `JsonCheckpointSaver` loaded from, and saved back to, the
                well-known state file
"""

from __future__ import annotations

import logging
from pathlib import Path

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import InMemorySaver
from pydantic import ValidationError

from workflow_checkpointing.checkpointing.json_checkpointer import (
    JsonCheckpointSaver,
    SerializedState,
    SerializedStateError,
)
from workflow_checkpointing.config import WorkflowEnvironment, WorkflowSettings
from workflow_checkpointing.storage.filesystem import (
    FileSystemOperations,
    LocalFileSystemOperations,
)
from workflow_checkpointing.storage.well_known_directory import WellKnownDirectory, WellKnownFile

logger = logging.getLogger(__name__)


class EnvironmentMismatchError(RuntimeError):
    """Raised when a checkpointer does not belong to the manager's environment."""


class WorkflowStateManager:
    """Create checkpointers for an environment and persist their state.

    Supports an injectable filesystem so tests never need real disk I/O.
    """

    def __init__(
        self,
        *,
        environment: WorkflowEnvironment = "production",
        project_path: Path | str | None = None,
        file_system: FileSystemOperations | None = None,
        directory: WellKnownDirectory | None = None,
    ) -> None:
        """Initialize the state manager.

        Args:
            environment: "production" persists to disk, "test" stays in memory.
            project_path: Root for the well-known directory (see WellKnownDirectory).
            file_system: Filesystem implementation; defaults to the local disk.
            directory: Pre-built directory resolver; overrides `project_path`.
        """
        self.environment: WorkflowEnvironment = environment
        self._fs: FileSystemOperations = file_system or LocalFileSystemOperations()
        self._directory = directory or WellKnownDirectory(project_path, file_system=self._fs)

    @classmethod
    def from_settings(
        cls,
        settings: WorkflowSettings,
        *,
        file_system: FileSystemOperations | None = None,
    ) -> WorkflowStateManager:
        return cls(
            environment=settings.environment,
            project_path=settings.project_path,
            file_system=file_system,
        )

    @property
    def state_path(self) -> Path:
        """Path of the persisted state file (ensures its directory exists)."""

        return self._directory.state_store_path()

    @property
    def _state_file(self) -> Path:
        # Same location as `state_path` without creating the directory.
        return self._directory.path / WellKnownFile.WORKFLOW_STATE_STORE.value

    def create_checkpointer(self) -> BaseCheckpointSaver:
        """Create a checkpointer configured for the current environment.

        In production the previously saved state is imported when it exists and
        is readable; otherwise the checkpointer starts empty.
        """

        if self.environment == "test":
            logger.debug("Creating in-memory checkpointer for test environment")
            return InMemorySaver()

        logger.debug("Creating JSON checkpointer for production environment")
        checkpointer = JsonCheckpointSaver()

        serialized_state = self._read_state()
        if serialized_state is None:
            logger.info("Starting with fresh checkpointer")
            return checkpointer

        logger.info("Importing existing checkpointer state from disk")
        try:
            checkpointer.import_state(serialized_state)
        except SerializedStateError as e:
            logger.warning(
                "Existing state is unreadable; starting with fresh state",
                extra={"path": str(self._state_file), "error": str(e)},
            )

        return checkpointer

    def save_checkpointer_state(self, checkpointer: BaseCheckpointSaver) -> None:
        """Persist checkpointer state to disk (production only).

        Raises:
            EnvironmentMismatchError: If a JSON checkpointer shows up in test mode.
            SerializedStateError: If the exported state is not valid serialized state.
            OSError: If the directory or file cannot be written.
        """

        if self.environment == "test":
            if isinstance(checkpointer, JsonCheckpointSaver):
                raise EnvironmentMismatchError(
                    "Invalid state: test environment should use InMemorySaver, "
                    "not JsonCheckpointSaver"
                )
            logger.debug("Skipping state persistence in test environment")
            return

        if not isinstance(checkpointer, JsonCheckpointSaver):
            logger.warning(
                "Checkpointer is not a JsonCheckpointSaver in production environment; "
                "skipping persistence",
                extra={"checkpointer": type(checkpointer).__name__},
            )
            return

        self._write_state(checkpointer.export_state())
        logger.info("Checkpointer state persisted to disk")

    def state_exists(self) -> bool:
        return self._fs.is_file(self._state_file)

    def clear_state(self) -> None:
        """Delete the persisted state file. Missing files are not an error."""

        path = self._state_file
        try:
            self._fs.unlink(path)
        except FileNotFoundError:
            logger.debug("State file already absent", extra={"path": str(path)})
            return
        logger.info("Cleared checkpointer state file", extra={"path": str(path)})

    def _read_state(self) -> str | None:
        path = self._state_file

        try:
            content = self._fs.read_text(path)
        except FileNotFoundError:
            logger.info("No existing state found", extra={"path": str(path)})
            return None
        except OSError:
            logger.error(
                "Failed to read checkpointer state", extra={"path": str(path)}, exc_info=True
            )
            return None

        try:
            SerializedState.model_validate_json(content)
        except ValidationError as e:
            # Availability over durability: the session restarts instead of wedging.
            logger.warning(
                "Existing state is unreadable; starting with fresh state",
                extra={"path": str(path), "error_count": e.error_count(), "error": str(e)},
            )
            return None

        logger.debug(
            "Read and validated checkpointer state",
            extra={"path": str(path), "state_size": len(content)},
        )
        return content

    def _write_state(self, serialized_state: str) -> None:
        path = self.state_path

        try:
            SerializedState.model_validate_json(serialized_state)
        except ValidationError as e:
            logger.error("Refusing to persist invalid serialized state", extra={"path": str(path)})
            raise SerializedStateError(f"Invalid serialized state: {e}") from e

        self._fs.mkdir(path.parent, parents=True)

        logger.info("Saving checkpointer state", extra={"path": str(path)})
        temp_path = path.with_name(path.name + ".tmp")
        self._fs.write_text(temp_path, serialized_state)
        self._fs.rename(temp_path, path)

        logger.debug(
            "Saved checkpointer state",
            extra={"path": str(path), "state_size": len(serialized_state)},
        )
