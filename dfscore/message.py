"""Wire messages exchanged between nodes and their decoding."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

INCOMING_MESSAGE = 0x1
INCOMING_STREAM = 0x2

_MAX_PAYLOAD = 1028


@dataclass
class Message:
    """A frame read from a peer connection."""

    from_addr: str = ""
    payload: bytes = b""
    stream: bool = False


@dataclass(frozen=True)
class StoreMessagePayload:
    key: str
    size: int


@dataclass(frozen=True)
class GetMessagePayload:
    key: str


@dataclass(frozen=True)
class DataMessage:
    payload: Union[StoreMessagePayload, GetMessagePayload]


def encode_data_message(msg: DataMessage) -> bytes:
    """Serialise a data message to bytes."""
    payload = msg.payload
    if isinstance(payload, StoreMessagePayload):
        body = {"type": "store", "key": payload.key, "size": payload.size}
    elif isinstance(payload, GetMessagePayload):
        body = {"type": "get", "key": payload.key}
    else:
        raise TypeError(f"unsupported payload type: {type(payload).__name__}")
    return json.dumps(body).encode()


def decode_data_message(data: bytes) -> DataMessage:
    """Parse bytes produced by :func:`encode_data_message`."""
    try:
        body = json.loads(data)
        kind = body["type"]
        if kind == "store":
            return DataMessage(StoreMessagePayload(str(body["key"]), int(body["size"])))
        if kind == "get":
            return DataMessage(GetMessagePayload(str(body["key"])))
    except (ValueError, KeyError, TypeError) as exc:
        raise ValueError(f"malformed data message: {exc}") from exc
    raise ValueError(f"unknown data message type: {kind!r}")


class DefaultDecoder:
    """Reads one frame: a kind byte, then either a stream marker or a payload."""

    def decode(self, reader) -> Message:
        kind = reader.read(1)
        if not kind:
            raise EOFError("connection closed")
        if kind[0] == INCOMING_STREAM:
            return Message(stream=True)
        payload = reader.read(_MAX_PAYLOAD)
        if not payload:
            raise EOFError("connection closed")
        return Message(payload=payload)


def nop_handshake(peer) -> None:
    """Accept every peer without negotiation."""
    return None