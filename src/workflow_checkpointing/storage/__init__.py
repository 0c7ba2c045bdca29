"""Storage package initialization."""

from workflow_checkpointing.storage.filesystem import (
    FileSystemOperations,
    LocalFileSystemOperations,
)
from workflow_checkpointing.storage.well_known_directory import (
    WELL_KNOWN_DIR_NAME,
    WellKnownDirectory,
    WellKnownFile,
)

__all__ = [
    "FileSystemOperations",
    "LocalFileSystemOperations",
    "WELL_KNOWN_DIR_NAME",
    "WellKnownDirectory",
    "WellKnownFile",
]
