"""Unit tests for the JSON-exportable checkpoint saver."""

from __future__ import annotations

import base64
import json
from typing import Any

import pytest

from workflow_checkpointing.checkpointing.codec import JsonCodec
from workflow_checkpointing.checkpointing.json_checkpointer import (
    InvalidCheckpointConfigError,
    JsonCheckpointSaver,
    MissingThreadIdError,
    SerializedStateError,
)


def _checkpoint(checkpoint_id: str, **values: Any) -> dict[str, Any]:
    return {
        "v": 1,
        "id": checkpoint_id,
        "ts": "2025-01-01T00:00:00+00:00",
        "channel_values": values,
        "channel_versions": {},
        "versions_seen": {},
    }


def _config(thread_id: str, checkpoint_id: str | None = None) -> dict[str, Any]:
    configurable: dict[str, Any] = {"thread_id": thread_id, "checkpoint_ns": ""}
    if checkpoint_id is not None:
        configurable["checkpoint_id"] = checkpoint_id
    return {"configurable": configurable}


def _put_chain(saver: JsonCheckpointSaver, thread_id: str, count: int) -> None:
    """Put `count` checkpoints cp-0..cp-N, each parented on the previous one."""
    parent: str | None = None
    for i in range(count):
        source = "loop" if i % 2 == 0 else "input"
        saver.put(
            _config(thread_id, parent),
            _checkpoint(f"cp-{i}", step=i),
            {"source": source, "step": i},
            {},
        )
        parent = f"cp-{i}"


def test_put_and_get_tuple_roundtrip() -> None:
    saver = JsonCheckpointSaver()

    returned = saver.put(
        _config("thread-1"), _checkpoint("cp-1", messages=["hi"]), {"step": 1}, {}
    )

    assert returned["configurable"]["thread_id"] == "thread-1"
    assert returned["configurable"]["checkpoint_id"] == "cp-1"

    tup = saver.get_tuple(_config("thread-1"))
    assert tup is not None
    assert tup.checkpoint["id"] == "cp-1"
    assert tup.checkpoint["channel_values"] == {"messages": ["hi"]}
    assert tup.metadata == {"step": 1}
    assert tup.config["configurable"]["checkpoint_id"] == "cp-1"
    assert tup.parent_config is None
    assert tup.pending_writes == []


def test_get_tuple_returns_most_recent_put() -> None:
    saver = JsonCheckpointSaver()
    _put_chain(saver, "thread-1", 5)

    tup = saver.get_tuple(_config("thread-1"))

    assert tup is not None
    assert tup.checkpoint["id"] == "cp-4"


def test_parent_reference_resolves_to_parent_checkpoint() -> None:
    saver = JsonCheckpointSaver()
    saver.put(_config("thread-1"), _checkpoint("cp-a"), {}, {})
    saver.put(_config("thread-1", "cp-a"), _checkpoint("cp-b"), {}, {})

    head = saver.get_tuple(_config("thread-1"))
    assert head is not None
    assert head.parent_config == {
        "configurable": {"thread_id": "thread-1", "checkpoint_ns": "", "checkpoint_id": "cp-a"}
    }

    parent = saver.get_tuple(head.parent_config)
    assert parent is not None
    assert parent.checkpoint["id"] == "cp-a"


def test_get_tuple_for_unknown_thread_or_checkpoint_is_none() -> None:
    saver = JsonCheckpointSaver()
    saver.put(_config("thread-1"), _checkpoint("cp-1"), {}, {})

    assert saver.get_tuple(_config("nope")) is None
    assert saver.get_tuple(_config("thread-1", "missing")) is None


def test_missing_thread_id_is_rejected() -> None:
    saver = JsonCheckpointSaver()

    with pytest.raises(MissingThreadIdError):
        saver.put({"configurable": {}}, _checkpoint("cp-1"), {}, {})
    with pytest.raises(MissingThreadIdError):
        saver.get_tuple({"configurable": {"thread_id": ""}})


def test_pending_writes_are_rehydrated_with_checkpoint() -> None:
    saver = JsonCheckpointSaver()
    saver.put(_config("thread-1"), _checkpoint("cp-1"), {}, {})

    saver.put_writes(
        _config("thread-1", "cp-1"), [("messages", "hello"), ("data", {"a": 1})], "task-1"
    )

    tup = saver.get_tuple(_config("thread-1"))
    assert tup is not None
    assert tup.pending_writes == [
        ("task-1", "messages", "hello"),
        ("task-1", "data", {"a": 1}),
    ]


def test_pending_writes_accumulate_across_calls() -> None:
    saver = JsonCheckpointSaver()
    saver.put(_config("thread-1"), _checkpoint("cp-1"), {}, {})
    config = _config("thread-1", "cp-1")

    saver.put_writes(config, [("messages", "one")], "task-1")
    saver.put_writes(config, [("messages", "two")], "task-2")
    saver.put_writes(config, [("__error__", "boom")], "task-1")

    tup = saver.get_tuple(_config("thread-1"))
    assert tup is not None
    assert len(tup.pending_writes) == 3


def test_rewriting_same_task_channel_overwrites() -> None:
    saver = JsonCheckpointSaver()
    saver.put(_config("thread-1"), _checkpoint("cp-1"), {}, {})
    config = _config("thread-1", "cp-1")

    saver.put_writes(config, [("__resume__", "first")], "task-1")
    saver.put_writes(config, [("__resume__", "second")], "task-1")

    tup = saver.get_tuple(_config("thread-1"))
    assert tup is not None
    assert tup.pending_writes == [("task-1", "__resume__", "second")]


def test_put_writes_requires_thread_and_checkpoint() -> None:
    saver = JsonCheckpointSaver()

    with pytest.raises(InvalidCheckpointConfigError):
        saver.put_writes(_config("thread-1"), [("messages", "x")], "task-1")


def test_list_is_newest_first() -> None:
    saver = JsonCheckpointSaver()
    _put_chain(saver, "thread-1", 4)

    ids = [t.checkpoint["id"] for t in saver.list(_config("thread-1"))]

    assert ids == ["cp-3", "cp-2", "cp-1", "cp-0"]


def test_list_applies_filter_before_limit() -> None:
    saver = JsonCheckpointSaver()
    _put_chain(saver, "thread-1", 6)

    tuples = list(saver.list(_config("thread-1"), filter={"source": "loop"}, limit=2))

    assert [t.checkpoint["id"] for t in tuples] == ["cp-4", "cp-2"]
    assert all(t.metadata["source"] == "loop" for t in tuples)

    fewer = list(saver.list(_config("thread-1"), filter={"step": 5}, limit=3))
    assert [t.checkpoint["id"] for t in fewer] == ["cp-5"]

    none = list(saver.list(_config("thread-1"), filter={"source": "update"}, limit=3))
    assert none == []


def test_list_before_skips_newer_checkpoints() -> None:
    saver = JsonCheckpointSaver()
    _put_chain(saver, "thread-1", 4)

    tuples = saver.list(_config("thread-1"), before=_config("thread-1", "cp-2"))

    assert [t.checkpoint["id"] for t in tuples] == ["cp-1", "cp-0"]


def test_list_unknown_or_missing_thread_yields_nothing() -> None:
    saver = JsonCheckpointSaver()

    assert list(saver.list(_config("nope"))) == []
    assert list(saver.list(None)) == []
    assert list(saver.list({"configurable": {}})) == []


def test_delete_thread_leaves_other_threads_untouched() -> None:
    saver = JsonCheckpointSaver()
    _put_chain(saver, "thread-1", 2)
    _put_chain(saver, "thread-2", 3)
    saver.put_writes(_config("thread-1", "cp-1"), [("messages", "x")], "task-1")
    saver.put_writes(_config("thread-2", "cp-2"), [("messages", "y")], "task-1")

    saver.delete_thread("thread-1")

    assert saver.get_tuple(_config("thread-1")) is None
    assert list(saver.list(_config("thread-1"))) == []

    other = saver.get_tuple(_config("thread-2"))
    assert other is not None
    assert other.checkpoint["id"] == "cp-2"
    assert other.pending_writes == [("task-1", "messages", "y")]

    exported = json.loads(saver.export_state())
    assert list(exported["storage"]) == ["thread-2"]
    assert list(exported["writes"]) == ["thread-2:cp-2"]


def test_delete_thread_keeps_threads_whose_id_extends_it() -> None:
    saver = JsonCheckpointSaver()
    saver.put(_config("a"), _checkpoint("cp-1"), {}, {})
    saver.put(_config("a:b"), _checkpoint("cp-2"), {}, {})
    saver.put_writes(_config("a", "cp-1"), [("messages", "drop me")], "task-1")
    saver.put_writes(_config("a:b", "cp-2"), [("messages", "keep me")], "task-1")

    saver.delete_thread("a")

    assert saver.get_tuple(_config("a")) is None
    kept = saver.get_tuple(_config("a:b"))
    assert kept is not None
    assert kept.pending_writes == [("task-1", "messages", "keep me")]
    assert list(json.loads(saver.export_state())["writes"]) == ["a:b:cp-2"]


def test_delete_unknown_thread_is_noop() -> None:
    saver = JsonCheckpointSaver()
    saver.delete_thread("nope")
    assert json.loads(saver.export_state())["storage"] == {}


def test_export_import_preserves_reads() -> None:
    saver = JsonCheckpointSaver()
    _put_chain(saver, "thread-1", 3)
    saver.put_writes(_config("thread-1", "cp-2"), [("messages", {"n": 1})], "task-1")

    restored = JsonCheckpointSaver()
    restored.import_state(saver.export_state())

    assert restored.get_tuple(_config("thread-1")) == saver.get_tuple(_config("thread-1"))
    assert list(restored.list(_config("thread-1"))) == list(saver.list(_config("thread-1")))
    assert restored.export_state() == saver.export_state()


def test_empty_state_roundtrip() -> None:
    restored = JsonCheckpointSaver()
    restored.import_state(JsonCheckpointSaver().export_state())

    assert json.loads(restored.export_state()) == {"version": 1, "storage": {}, "writes": {}}


def test_legacy_state_without_version_imports_as_version_one() -> None:
    legacy = JsonCheckpointSaver()
    legacy.import_state(json.dumps({"storage": {}, "writes": {}}))

    versioned = JsonCheckpointSaver()
    versioned.import_state(json.dumps({"version": 1, "storage": {}, "writes": {}}))

    assert legacy.export_state() == versioned.export_state()
    assert json.loads(legacy.export_state())["version"] == 1


def test_import_rejects_invalid_blobs() -> None:
    saver = JsonCheckpointSaver()

    with pytest.raises(SerializedStateError):
        saver.import_state("this is not json")
    with pytest.raises(SerializedStateError):
        saver.import_state(json.dumps({"storage": [], "writes": {}}))
    with pytest.raises(SerializedStateError):
        saver.import_state(json.dumps({"storage": {}, "writes": {"t:c": "not a ledger"}}))


def test_import_rejects_payloads_that_do_not_decode() -> None:
    saver = JsonCheckpointSaver()
    saver.put(_config("thread-1"), _checkpoint("cp-1"), {}, {})
    valid = saver.export_state()
    not_base64 = json.dumps(
        {"storage": {"t": [{"checkpoint": "!!!not-base64", "metadata": "AAAA"}]}, "writes": {}}
    )
    untagged = base64.b64encode(b"no type tag").decode("ascii")
    not_serde = json.dumps(
        {"storage": {"t": [{"checkpoint": untagged, "metadata": untagged}]}, "writes": {}}
    )
    bad_ledger = json.dumps(
        {"storage": {}, "writes": {"t:c": json.dumps({"task-1:0": ["task-1", "m", "@@"]})}}
    )

    for blob in (not_base64, not_serde, bad_ledger):
        with pytest.raises(SerializedStateError):
            saver.import_state(blob)

    assert saver.export_state() == valid


def test_exported_layout_with_json_codec() -> None:
    saver = JsonCheckpointSaver(codec=JsonCodec())
    saver.put(_config("thread-1"), _checkpoint("cp-a"), {"step": 0}, {})
    saver.put(
        _config("thread-1", "cp-a"), _checkpoint("cp-b", title="ünïcode ✓"), {"step": 1}, {}
    )
    saver.put_writes(_config("thread-1", "cp-b"), [("messages", "x")], "task-1")

    exported = json.loads(saver.export_state())

    entries = exported["storage"]["thread-1"]
    assert [json.loads(base64.b64decode(e["checkpoint"]))["id"] for e in entries] == [
        "cp-b",
        "cp-a",
    ]
    assert entries[0]["parentId"] == "cp-a"
    assert "parentId" not in entries[1]
    assert json.loads(base64.b64decode(entries[0]["metadata"])) == {"step": 1}

    ledger = json.loads(exported["writes"]["thread-1:cp-b"])
    task_id, channel, value = ledger["task-1:0"]
    assert (task_id, channel) == ("task-1", "messages")
    assert json.loads(base64.b64decode(value)) == "x"

    head = saver.get_tuple(_config("thread-1"))
    assert head is not None
    assert head.checkpoint["channel_values"] == {"title": "ünïcode ✓"}


@pytest.mark.asyncio
async def test_async_methods_delegate_to_sync_store() -> None:
    saver = JsonCheckpointSaver()

    config = await saver.aput(_config("thread-1"), _checkpoint("cp-1"), {"step": 1}, {})
    await saver.aput_writes(config, [("messages", "hi")], "task-1")

    tup = await saver.aget_tuple(_config("thread-1"))
    assert tup is not None
    assert tup.pending_writes == [("task-1", "messages", "hi")]

    listed = [t async for t in saver.alist(_config("thread-1"), limit=1)]
    assert [t.checkpoint["id"] for t in listed] == ["cp-1"]

    await saver.adelete_thread("thread-1")
    assert await saver.aget_tuple(_config("thread-1")) is None
