"""Length-prefixed framing: an 8-byte little-endian header (length, ID) before each payload."""

from __future__ import annotations

import struct
from typing import Protocol

from zinx.config import DEFAULT_MAX_PACKET_SIZE
from zinx.message import Message

DEFAULT_HEADER_LEN = 8

_HEADER = struct.Struct("<II")


class Packet(Protocol):
    """Anything that can frame messages onto a byte stream and read headers back."""

    @property
    def head_len(self) -> int: ...

    def pack(self, msg: Message) -> bytes: ...

    def unpack(self, binary_data: bytes) -> Message: ...


class PacketTooLargeError(ValueError):
    """Raised when a header announces a payload above the allowed size."""


class DataPack:
    """The default framing: data length then message ID, both uint32 little-endian."""

    def __init__(self, max_packet_size: int = DEFAULT_MAX_PACKET_SIZE) -> None:
        self.max_packet_size = max_packet_size

    @property
    def head_len(self) -> int:
        return DEFAULT_HEADER_LEN

    def pack(self, msg: Message) -> bytes:
        """Return the header followed by the payload."""
        try:
            header = _HEADER.pack(msg.data_len, msg.msg_id)
        except struct.error as exc:
            raise ValueError(f"cannot pack message header: {exc}") from exc
        return header + bytes(msg.data)

    def unpack(self, binary_data: bytes) -> Message:
        """Read a header; the returned message has an empty payload and the announced length."""
        if len(binary_data) < DEFAULT_HEADER_LEN:
            raise ValueError(
                f"header needs {DEFAULT_HEADER_LEN} bytes, got {len(binary_data)}"
            )
        data_len, msg_id = _HEADER.unpack_from(binary_data)
        if self.max_packet_size > 0 and data_len > self.max_packet_size:
            raise PacketTooLargeError("too large msg data received")
        return Message(msg_id=msg_id, data=b"", data_len=data_len)