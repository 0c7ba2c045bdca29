"""LangGraph checkpoint saver whose whole state exports to one JSON document.

Each thread keeps an append-at-head history of checkpoints, newest first, plus
a ledger of pending writes per `thread_id:checkpoint_id`. The saver knows
nothing about files: `export_state()` / `import_state()` are the unit of
durability and the caller decides where the blob lives.

Exported shape:

    {
      "version": 1,
      "storage": {"<thread_id>": [{"checkpoint": b64, "metadata": b64, "parentId": id}, ...]},
      "writes": {"<thread_id>:<checkpoint_id>": "<json of {task_id:idx: [task_id, channel, b64]}>"}
    }
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import AsyncIterator, Iterator, Mapping, Sequence
from typing import Annotated, Any, Literal

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import (
    WRITES_IDX_MAP,
    BaseCheckpointSaver,
    ChannelVersions,
    Checkpoint,
    CheckpointMetadata,
    CheckpointTuple,
)
from langgraph.checkpoint.serde.base import SerializerProtocol
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from workflow_checkpointing.checkpointing.codec import PayloadCodec, SerdeCodec

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def _require_base64(value: str) -> str:
    try:
        base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Payload is not valid base64: {e}") from e
    return value


Base64Payload = Annotated[str, AfterValidator(_require_base64)]

_LEDGER_ADAPTER: TypeAdapter[dict[str, tuple[str, str, Base64Payload]]] = TypeAdapter(
    dict[str, tuple[str, str, Base64Payload]]
)


class MissingThreadIdError(ValueError):
    """Raised when a read or write does not name a thread."""


class InvalidCheckpointConfigError(ValueError):
    """Raised when a pending write cannot be tied to a thread and checkpoint."""


class SerializedStateError(ValueError):
    """Raised when a blob is not a valid serialized checkpointer state."""


class StoredCheckpoint(BaseModel):
    """One encoded checkpoint as it appears in the exported state."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    checkpoint: Base64Payload
    metadata: Base64Payload
    parent_id: str | None = Field(default=None, alias="parentId")


class ThreadHistory(RootModel[list[StoredCheckpoint]]):
    """Checkpoints of one thread, ordered newest first.

    Insertion order is recency order: `push` places the entry at the head and the
    head is the thread's current state.
    """

    root: list[StoredCheckpoint] = Field(default_factory=list)

    @property
    def head(self) -> StoredCheckpoint | None:
        return self.root[0] if self.root else None

    def push(self, entry: StoredCheckpoint) -> None:
        self.root.insert(0, entry)

    def __iter__(self) -> Iterator[StoredCheckpoint]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


class SerializedState(BaseModel):
    """The entire saver state; imported and exported as a single document."""

    model_config = ConfigDict(extra="ignore")

    version: Literal[1] = STATE_VERSION
    storage: dict[str, ThreadHistory] = Field(default_factory=dict)
    writes: dict[str, str] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _default_missing_version(cls, value: object) -> object:
        # Data written before versioning carries no (or a falsy) version.
        return value or STATE_VERSION

    @field_validator("writes")
    @classmethod
    def _validate_ledgers(cls, value: dict[str, str]) -> dict[str, str]:
        for key, ledger in value.items():
            try:
                _LEDGER_ADAPTER.validate_json(ledger)
            except ValidationError as e:
                raise ValueError(f"Malformed pending-write ledger for {key!r}") from e
        return value


def _configurable(config: RunnableConfig | None) -> dict[str, Any]:
    if not config:
        return {}
    return dict(config.get("configurable") or {})


def _thread_id(config: RunnableConfig | None) -> str | None:
    thread_id = _configurable(config).get("thread_id")
    return str(thread_id) if thread_id else None


def _require_thread_id(config: RunnableConfig | None) -> str:
    thread_id = _thread_id(config)
    if thread_id is None:
        raise MissingThreadIdError("thread_id not found in config")
    return thread_id


def _checkpoint_key(config: RunnableConfig | None) -> str:
    configurable = _configurable(config)
    thread_id = configurable.get("thread_id")
    checkpoint_id = configurable.get("checkpoint_id")
    if not thread_id or not checkpoint_id:
        raise InvalidCheckpointConfigError(
            f"Invalid config, missing thread_id or checkpoint_id: {configurable!r}"
        )
    return f"{thread_id}:{checkpoint_id}"


def _checkpoint_config(thread_id: str, checkpoint_ns: str, checkpoint_id: str) -> RunnableConfig:
    return {
        "configurable": {
            "thread_id": thread_id,
            "checkpoint_ns": checkpoint_ns,
            "checkpoint_id": checkpoint_id,
        }
    }


class JsonCheckpointSaver(BaseCheckpointSaver):
    """In-process checkpoint saver with full-state JSON export/import.

    Assumes a single writer per thread; no locking is performed. Checkpoint
    namespaces are carried through configs but do not partition storage.
    """

    def __init__(
        self,
        *,
        serde: SerializerProtocol | None = None,
        codec: PayloadCodec | None = None,
    ) -> None:
        super().__init__(serde=serde)
        self.codec: PayloadCodec = codec or SerdeCodec(self.serde)
        self._state = SerializedState()

    # -- encoding ---------------------------------------------------------

    def _encode(self, value: Any) -> str:
        return base64.b64encode(self.codec.encode(value)).decode("ascii")

    def _decode(self, payload: str) -> Any:
        return self.codec.decode(base64.b64decode(payload))

    def _pending_writes(self, thread_id: str, checkpoint_id: str) -> list[tuple[str, str, Any]]:
        raw = self._state.writes.get(f"{thread_id}:{checkpoint_id}")
        if raw is None:
            return []
        ledger: dict[str, list[str]] = json.loads(raw)
        return [
            (task_id, channel, self._decode(value)) for task_id, channel, value in ledger.values()
        ]

    def _to_tuple(
        self,
        thread_id: str,
        checkpoint_ns: str,
        entry: StoredCheckpoint,
        checkpoint: Checkpoint | None = None,
        metadata: CheckpointMetadata | None = None,
    ) -> CheckpointTuple:
        if checkpoint is None:
            checkpoint = self._decode(entry.checkpoint)
        if metadata is None:
            metadata = self._decode(entry.metadata)
        checkpoint_id = checkpoint["id"]

        parent_config = (
            _checkpoint_config(thread_id, checkpoint_ns, entry.parent_id)
            if entry.parent_id
            else None
        )
        return CheckpointTuple(
            config=_checkpoint_config(thread_id, checkpoint_ns, checkpoint_id),
            checkpoint=checkpoint,
            metadata=metadata,
            parent_config=parent_config,
            pending_writes=self._pending_writes(thread_id, checkpoint_id),
        )

    # -- BaseCheckpointSaver ----------------------------------------------

    def get_tuple(self, config: RunnableConfig) -> CheckpointTuple | None:
        """Return the requested checkpoint, or the thread's head when no id is given.

        Returns None when the thread (or the requested checkpoint) is unknown.
        """

        thread_id = _require_thread_id(config)
        configurable = _configurable(config)
        checkpoint_ns = configurable.get("checkpoint_ns", "")

        history = self._state.storage.get(thread_id)
        if history is None or history.head is None:
            return None

        wanted_id = configurable.get("checkpoint_id")
        if not wanted_id:
            return self._to_tuple(thread_id, checkpoint_ns, history.head)

        for entry in history:
            checkpoint: Checkpoint = self._decode(entry.checkpoint)
            if checkpoint["id"] == wanted_id:
                return self._to_tuple(thread_id, checkpoint_ns, entry, checkpoint=checkpoint)
        return None

    def list(
        self,
        config: RunnableConfig | None,
        *,
        filter: dict[str, Any] | None = None,  # noqa: A002 (matches BaseCheckpointSaver)
        before: RunnableConfig | None = None,
        limit: int | None = None,
    ) -> Iterator[CheckpointTuple]:
        """Yield checkpoints newest first.

        `filter` is an exact match on every given metadata key and is applied
        before `limit`. `before` skips the history up to and including the given
        checkpoint. Unknown or missing threads yield nothing.
        """

        thread_id = _thread_id(config)
        if thread_id is None:
            return
        history = self._state.storage.get(thread_id)
        if history is None:
            return

        checkpoint_ns = _configurable(config).get("checkpoint_ns", "")
        before_id = _configurable(before).get("checkpoint_id")
        passed_before = not before_id
        count = 0

        for entry in tuple(history):
            checkpoint: Checkpoint | None = None
            if not passed_before:
                checkpoint = self._decode(entry.checkpoint)
                passed_before = checkpoint["id"] == before_id
                continue

            metadata: CheckpointMetadata = self._decode(entry.metadata)
            if filter and not all(metadata.get(k) == v for k, v in filter.items()):
                continue

            if limit is not None and count >= limit:
                return
            count += 1

            yield self._to_tuple(
                thread_id, checkpoint_ns, entry, checkpoint=checkpoint, metadata=metadata
            )

    def put(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        """Store a checkpoint as the new head of its thread.

        The config's current `checkpoint_id`, if any, is recorded as the parent.
        """

        thread_id = _require_thread_id(config)
        configurable = _configurable(config)
        parent_id = configurable.get("checkpoint_id")

        history = self._state.storage.setdefault(thread_id, ThreadHistory())
        history.push(
            StoredCheckpoint(
                checkpoint=self._encode(checkpoint),
                metadata=self._encode(metadata),
                parent_id=parent_id,
            )
        )
        logger.debug(
            "Checkpoint stored",
            extra={
                "thread_id": thread_id,
                "checkpoint_id": checkpoint["id"],
                "parent_id": parent_id,
                "history_length": len(history),
            },
        )

        return _checkpoint_config(
            thread_id, configurable.get("checkpoint_ns", ""), checkpoint["id"]
        )

    def put_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        """Record pending writes for a task against the config's checkpoint.

        Entries are keyed by task id plus the special-channel index (or the
        write's position), so a retried task overwrites instead of duplicating.
        """

        key = _checkpoint_key(config)
        raw = self._state.writes.get(key)
        ledger: dict[str, list[str]] = json.loads(raw) if raw else {}

        for idx, (channel, value) in enumerate(writes):
            inner_key = f"{task_id}:{WRITES_IDX_MAP.get(channel, idx)}"
            ledger[inner_key] = [task_id, channel, self._encode(value)]

        self._state.writes[key] = json.dumps(ledger)

    def delete_thread(self, thread_id: str) -> None:
        """Drop every checkpoint and pending-write ledger of a thread."""

        self._state.storage.pop(thread_id, None)
        # Ledger keys are "<thread_id>:<checkpoint_id>"; thread ids may contain ":".
        for key in [k for k in self._state.writes if k.rsplit(":", 1)[0] == thread_id]:
            del self._state.writes[key]
        logger.debug("Thread deleted", extra={"thread_id": thread_id})

    async def aget_tuple(self, config: RunnableConfig) -> CheckpointTuple | None:
        return self.get_tuple(config)

    async def alist(
        self,
        config: RunnableConfig | None,
        *,
        filter: dict[str, Any] | None = None,  # noqa: A002 (matches BaseCheckpointSaver)
        before: RunnableConfig | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        for item in self.list(config, filter=filter, before=before, limit=limit):
            yield item

    async def aput(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        return self.put(config, checkpoint, metadata, new_versions)

    async def aput_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        self.put_writes(config, writes, task_id, task_path)

    async def adelete_thread(self, thread_id: str) -> None:
        self.delete_thread(thread_id)

    # -- export / import --------------------------------------------------

    def export_state(self) -> str:
        """Serialize the entire saver state to a JSON string."""

        return self._state.model_dump_json(by_alias=True, exclude_none=True)

    def import_state(self, blob: str) -> None:
        """Replace the entire saver state with a previously exported blob.

        Raises:
            SerializedStateError: If the blob is malformed or a payload fails to decode.
        """

        try:
            state = SerializedState.model_validate_json(blob)
        except ValidationError as e:
            raise SerializedStateError(f"Invalid serialized state: {e}") from e

        try:
            self._check_payloads(state)
        except ValueError as e:
            raise SerializedStateError(f"Undecodable payload in serialized state: {e}") from e

        self._state = state
        logger.debug("Checkpointer state imported", extra={"threads": len(state.storage)})

    def _check_payloads(self, state: SerializedState) -> None:
        """Decode every payload of `state` once so later reads cannot fail on it."""

        for thread_id, history in state.storage.items():
            for entry in history:
                checkpoint = self._decode(entry.checkpoint)
                if not isinstance(checkpoint, Mapping) or "id" not in checkpoint:
                    raise ValueError(f"Checkpoint of thread {thread_id!r} has no id")
                self._decode(entry.metadata)
        for ledger in state.writes.values():
            for _, _, value in json.loads(ledger).values():
                self._decode(value)
