"""The message carried by each packet: an ID, a payload and the payload length."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Message:
    """One message. ``data_len`` defaults to the length of ``data``.

    After a header has been unpacked, ``data`` is empty while ``data_len``
    still tells how many payload bytes follow on the stream.
    """

    msg_id: int
    data: bytes = b""
    data_len: Optional[int] = None

    def __post_init__(self) -> None:
        if self.data_len is None:
            self.data_len = len(self.data)

    @classmethod
    def from_payload(cls, msg_id: int, data: bytes) -> "Message":
        """Build a message whose length matches its payload."""
        payload = bytes(data)
        return cls(msg_id=msg_id, data=payload, data_len=len(payload))