"""
Field extraction for the recognized packet layouts.

Offsets are absolute indices into the decoded buffer (header included).
Adding a layout means adding a FieldLayout row to LAYOUTS.
"""
from __future__ import annotations

from dataclasses import dataclass

from .crc import HEADER_LEN
from .packet import ExtractedFields, Header

U32_LEN = 4


@dataclass(frozen=True)
class FieldLayout:
    name: str
    packet_type: int
    packet_length: int | None  # None matches any length
    meter_id: int
    meter_id_secondary: int | None = None
    up_time: int | None = None

    def __post_init__(self) -> None:
        for offset in self._offsets():
            if offset < HEADER_LEN:
                raise ValueError(f"layout {self.name}: offset {offset} overlaps the header")

    def _offsets(self) -> list[int]:
        return [o for o in (self.meter_id, self.meter_id_secondary, self.up_time) if o is not None]

    @property
    def min_size(self) -> int:
        """Smallest decoded buffer that holds every field."""
        return max(self._offsets()) + U32_LEN

    def matches(self, packet_type: int, packet_length: int) -> bool:
        if packet_type != self.packet_type:
            return False
        return self.packet_length is None or packet_length == self.packet_length


LAYOUTS: tuple[FieldLayout, ...] = (
    FieldLayout("uptime", packet_type=0x55, packet_length=0x0023, meter_id=24, up_time=18),
    FieldLayout("dual_id", packet_type=0xD5, packet_length=None, meter_id=9, meter_id_secondary=5),
)


def lookup_layout(packet_type: int, packet_length: int,
                  layouts: tuple[FieldLayout, ...] = LAYOUTS) -> FieldLayout | None:
    for layout in layouts:
        if layout.matches(packet_type, packet_length):
            return layout
    return None


def read_u32be(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + U32_LEN], "big")


def extract_fields(decoded: bytes, header: Header,
                   layouts: tuple[FieldLayout, ...] = LAYOUTS) -> ExtractedFields | None:
    """Project the layout's fields out of `decoded`, or None if unrecognized."""
    layout = lookup_layout(header.packet_type, header.packet_length, layouts)
    if layout is None or len(decoded) < layout.min_size:
        return None

    return ExtractedFields(
        layout=layout.name,
        meter_id=read_u32be(decoded, layout.meter_id),
        meter_id_secondary=(
            read_u32be(decoded, layout.meter_id_secondary)
            if layout.meter_id_secondary is not None else 0
        ),
        up_time=read_u32be(decoded, layout.up_time) if layout.up_time is not None else None,
    )
