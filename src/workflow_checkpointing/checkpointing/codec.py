"""Payload codecs used by the JSON checkpoint saver.

The saver never inspects checkpoint, metadata or write payloads. It stores the
bytes a codec produces (base64 encoded) and hands them back to the same codec.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

from langgraph.checkpoint.serde.base import SerializerProtocol

_TYPE_SEPARATOR = b"\x00"


class CodecError(ValueError):
    """Raised when stored bytes cannot be decoded by the codec."""


class PayloadCodec(Protocol):
    def encode(self, value: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


@dataclass(frozen=True, slots=True)
class SerdeCodec:
    """Adapts a LangGraph serializer to a bytes-in/bytes-out codec.

    LangGraph serializers are typed (`("msgpack", b"...")`, `("null", b"")`, ...),
    so the type tag is kept in front of the payload: `<type>\\x00<payload>`.
    Type tags are ASCII identifiers and never contain the separator.
    """

    serde: SerializerProtocol

    def encode(self, value: Any) -> bytes:
        type_, payload = self.serde.dumps_typed(value)
        return type_.encode("ascii") + _TYPE_SEPARATOR + payload

    def decode(self, data: bytes) -> Any:
        type_, separator, payload = data.partition(_TYPE_SEPARATOR)
        if not separator:
            raise CodecError("Encoded payload is missing its type tag")
        return self.serde.loads_typed((type_.decode("ascii"), payload))


class JsonCodec:
    """Plain JSON codec for payloads known to be JSON-compatible."""

    def encode(self, value: Any) -> bytes:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CodecError(f"Invalid JSON payload: {e}") from e
