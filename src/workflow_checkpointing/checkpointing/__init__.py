"""Checkpointing package initialization."""

from workflow_checkpointing.checkpointing.codec import (
    CodecError,
    JsonCodec,
    PayloadCodec,
    SerdeCodec,
)
from workflow_checkpointing.checkpointing.json_checkpointer import (
    InvalidCheckpointConfigError,
    JsonCheckpointSaver,
    MissingThreadIdError,
    SerializedState,
    SerializedStateError,
)
from workflow_checkpointing.checkpointing.state_manager import (
    EnvironmentMismatchError,
    WorkflowStateManager,
)

__all__ = [
    "CodecError",
    "EnvironmentMismatchError",
    "InvalidCheckpointConfigError",
    "JsonCheckpointSaver",
    "JsonCodec",
    "MissingThreadIdError",
    "PayloadCodec",
    "SerdeCodec",
    "SerializedState",
    "SerializedStateError",
    "WorkflowStateManager",
]
