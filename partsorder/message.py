"""Wire messages exchanged between the procurement client and the factory server."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

MAX_FACTORIES = 20

_WIRE = struct.Struct("!i6I")
SIZE = _WIRE.size


class Purpose(IntEnum):
    """What a message is for."""

    PRODUCTION_MSG = 1
    COMPLETION_MSG = 2
    REQUEST_MSG = 3
    ORDR_CONFIRM = 4
    PROTOCOL_ERR = 5


def _as_purpose(value: int) -> int:
    try:
        return Purpose(value)
    except ValueError:
        return value


@dataclass
class Message:
    """One fixed-size datagram: a signed purpose followed by six unsigned fields."""

    purpose: int = 0
    order_size: int = 0
    num_fac: int = 0
    fac_id: int = 0
    capacity: int = 0
    parts_made: int = 0
    duration: int = 0

    def __post_init__(self) -> None:
        self.purpose = _as_purpose(int(self.purpose))

    def pack(self) -> bytes:
        """Encode the message in network byte order."""
        try:
            return _WIRE.pack(
                int(self.purpose),
                self.order_size,
                self.num_fac,
                self.fac_id,
                self.capacity,
                self.parts_made,
                self.duration,
            )
        except struct.error as exc:
            raise ValueError(f"message field out of range: {exc}") from None

    @classmethod
    def unpack(cls, data: bytes) -> Message:
        """Decode a datagram; short data is zero-filled and extra bytes are dropped."""
        raw = bytes(data[:SIZE]).ljust(SIZE, b"\x00")
        purpose, *fields = _WIRE.unpack(raw)
        return cls(purpose, *fields)

    def describe(self) -> str:
        """Return a one-line human-readable rendering of the message."""
        if self.purpose == Purpose.PRODUCTION_MSG:
            return (
                f"{{ PRODUCTION ,FacID={self.fac_id:<3d}, Capacity={self.capacity:<3d}, "
                f"Made={self.parts_made:<4d}, duration={self.duration:<4d}ms) }}"
            )
        if self.purpose == Purpose.COMPLETION_MSG:
            return f"{{ COMPLETION , FacID={self.fac_id:<3d} }}"
        if self.purpose == Purpose.REQUEST_MSG:
            return f"{{ REQUEST    , OrderSz={self.order_size:<3d} }}"
        if self.purpose == Purpose.ORDR_CONFIRM:
            return f"{{ ORDR_CNFRM , numFacThrds={self.num_fac:<3d} }}"
        if self.purpose == Purpose.PROTOCOL_ERR:
            return "{ PROTOCOL_ERROR }"
        return "{ UNDEFINED_MSG }"

    def __str__(self) -> str:
        return self.describe()