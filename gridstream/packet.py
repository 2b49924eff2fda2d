"""
GridStream packet representation.

All records are immutable (frozen dataclasses); a decode call builds them once
and nothing downstream mutates them.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProtocolGeneration(Enum):
    """Line-coding generation, selected by the first raw sample of a burst."""

    # Value is the symbol stride: raw samples consumed per decoded byte
    G4 = 10
    G5 = 11

    @property
    def stride(self) -> int:
        return self.value


@dataclass(frozen=True)
class Header:
    """The four header bytes: sync marker, packet type, big-endian length."""

    sync: int
    packet_type: int
    packet_length: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "Header":
        if len(data) < 4:
            raise ValueError("header needs 4 bytes")
        return cls(
            sync=data[0],
            packet_type=data[1],
            packet_length=(data[2] << 8) | data[3],
        )

    def to_bytes(self) -> bytes:
        return bytes([self.sync, self.packet_type]) + self.packet_length.to_bytes(2, "big")


@dataclass(frozen=True)
class ExtractedFields:
    """Per-layout projection of a decoded packet."""

    layout: str
    meter_id: int
    meter_id_secondary: int = 0
    up_time: int | None = None


@dataclass(frozen=True)
class DecodedPacket:
    """
    An accepted packet, ready to hand downstream.

    `payload` is the decoded buffer (header included) truncated to
    packet_length + 4 bytes; `metadata` is passed through untouched.
    """

    metadata: Any
    payload: bytes
    generation: ProtocolGeneration
    header: Header
    fields: ExtractedFields
    crc_received: int
    crc_computed: int

    @property
    def crc_ok(self) -> bool:
        return self.crc_received == self.crc_computed

    @property
    def packet_type(self) -> int:
        return self.header.packet_type

    @property
    def packet_length(self) -> int:
        return self.header.packet_length

    @property
    def meter_id(self) -> int:
        return self.fields.meter_id

    def hex(self) -> str:
        return self.payload.hex().upper()
