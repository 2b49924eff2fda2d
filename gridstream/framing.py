"""
Frame parser: header discovery and payload extraction.

Frame layout (after the generation marker and start bit):

    sync | packet_type | length_hi | length_lo | payload ... | crc_hi | crc_lo

`packet_length` counts everything after the header, CRC included.
"""
from __future__ import annotations

from dataclasses import dataclass

from .crc import CRC_LEN, HEADER_LEN, crc16
from .demapper import (
    BitBuffer,
    DemapError,
    demap_bytes,
    detect_generation,
    header_offset,
)
from .packet import Header, ProtocolGeneration

HEADER_SYNC = 0x2A


@dataclass(frozen=True)
class Frame:
    generation: ProtocolGeneration
    header: Header
    data: bytes        # header + payload, packet_length + 4 bytes
    end_offset: int    # raw offset just past the last decoded byte


def parse_header(raw: BitBuffer, generation: ProtocolGeneration) -> tuple[Header, int]:
    """Decode the 4 header bytes; returns the header and the next raw offset."""
    data, offset = demap_bytes(raw, header_offset(generation), HEADER_LEN, generation.stride)
    return Header.from_bytes(data), offset


def length_guard(raw: BitBuffer, packet_length: int) -> bool:
    # Raw sample count against declared byte count. Coarse on purpose: the
    # demapper bounds check catches bursts this lets through.
    return raw.size > packet_length


def read_frame(raw: BitBuffer, generation: ProtocolGeneration | None = None) -> Frame | None:
    """Decode header and payload, or None when the burst cannot hold them."""
    try:
        if generation is None:
            generation = detect_generation(raw)
        header, offset = parse_header(raw, generation)
    except DemapError:
        return None

    if not length_guard(raw, header.packet_length):
        return None

    try:
        payload, offset = demap_bytes(raw, offset, header.packet_length, generation.stride)
    except DemapError:
        return None

    return Frame(
        generation=generation,
        header=header,
        data=header.to_bytes() + payload,
        end_offset=offset,
    )


def build_frame(packet_type: int, body: bytes, crc_init: int = 0x0000, sync: int = HEADER_SYNC) -> bytes:
    """Assemble header + body + CRC, the byte image read_frame recovers."""
    packet_length = len(body) + CRC_LEN
    if packet_length > 0xFFFF:
        raise ValueError("body too long for a 16-bit packet length")
    header = Header(sync=sync & 0xFF, packet_type=packet_type & 0xFF, packet_length=packet_length)
    crc = crc16(body, crc_init)
    return header.to_bytes() + bytes(body) + crc.to_bytes(2, "big")
