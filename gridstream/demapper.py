"""
Bit demapper for the GridStream line code.

Each byte on air is framed by start/stop bits, so one decoded byte occupies
`stride` raw samples (10 for G4, 11 for G5). Data bits are sent LSB first.
A burst opens with a generation marker field of `stride` samples whose first
sample tells the generations apart (G4 = 0111111111, G5 = 11111111111), then a
start bit, then the first header byte.

G5 bytes are read at the 11-sample stride throughout; captures that step 10
samples per byte after the G5 marker would need `demap_bytes` called with 10.
"""
from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import numpy.typing as npt

from .packet import ProtocolGeneration

BitBuffer = npt.NDArray[np.uint8]
RawSamples = Union[BitBuffer, bytes, bytearray, Sequence[int]]

BITS_PER_BYTE = 8
START_BITS = 1
DEFAULT_IDLE_BITS = 16

_BIT_OFFSETS = np.arange(BITS_PER_BYTE)


class DemapError(Exception):
    """A read ran past the end of the raw sample buffer."""


def as_bit_buffer(samples: RawSamples) -> BitBuffer:
    """Coerce raw samples to a 1-D uint8 array of 0/1 values."""
    if isinstance(samples, (bytes, bytearray)):
        arr = np.frombuffer(bytes(samples), dtype=np.uint8)
    else:
        arr = np.asarray(samples)
    if arr.ndim != 1:
        raise ValueError(f"expected a 1-D sample vector, got shape {arr.shape}")
    if arr.size and arr.dtype.kind not in "biu":
        raise ValueError(f"expected integer samples, got dtype {arr.dtype}")
    return (arr != 0).astype(np.uint8)


def detect_generation(raw: BitBuffer) -> ProtocolGeneration:
    if raw.size == 0:
        raise DemapError("empty buffer has no generation marker")
    return ProtocolGeneration.G5 if raw[0] else ProtocolGeneration.G4


def header_offset(generation: ProtocolGeneration) -> int:
    """Index of the first data bit of the first header byte."""
    return generation.stride + START_BITS


def demap_byte(raw: BitBuffer, offset: int) -> int:
    """Assemble one byte from raw[offset:offset+8], first sample as the LSB."""
    if offset < 0 or offset + BITS_PER_BYTE > raw.size:
        raise DemapError(f"byte at offset {offset} exceeds buffer of {raw.size} samples")
    return int(np.packbits(raw[offset:offset + BITS_PER_BYTE], bitorder="little")[0])


def demap_bytes(raw: BitBuffer, offset: int, count: int, stride: int) -> tuple[bytes, int]:
    """
    Decode `count` consecutive bytes starting at `offset`.

    Returns the bytes and the offset of the byte that would follow.
    """
    if count <= 0:
        return b"", offset
    last = offset + (count - 1) * stride + BITS_PER_BYTE
    if offset < 0 or last > raw.size:
        raise DemapError(f"{count} bytes at offset {offset} exceed buffer of {raw.size} samples")
    index = offset + stride * np.arange(count)[:, None] + _BIT_OFFSETS
    octets = np.packbits(raw[index], axis=1, bitorder="little")
    return octets.ravel().tobytes(), offset + count * stride


def marker_field(generation: ProtocolGeneration) -> BitBuffer:
    field = np.ones(generation.stride, dtype=np.uint8)
    if generation is ProtocolGeneration.G4:
        field[0] = 0
    return field


def expand_bytes(data: bytes,
                 generation: ProtocolGeneration = ProtocolGeneration.G4,
                 idle_bits: int = DEFAULT_IDLE_BITS) -> BitBuffer:
    """
    Line-code `data` into raw samples, the inverse of demapping.

    Layout: marker field, start bit, then per byte 8 data bits LSB first,
    stop bit(s) and the next start bit, then `idle_bits` of mark.
    """
    stride = generation.stride
    octets = np.frombuffer(bytes(data), dtype=np.uint8)
    data_bits = np.unpackbits(octets[:, None], axis=1, bitorder="little")
    tail = np.ones(stride - BITS_PER_BYTE, dtype=np.uint8)
    tail[-1] = 0
    framing = np.tile(tail, (octets.size, 1))
    body = np.hstack([data_bits, framing]).ravel()
    return np.concatenate([
        marker_field(generation),
        np.zeros(START_BITS, dtype=np.uint8),
        body.astype(np.uint8),
        np.ones(idle_bits, dtype=np.uint8),
    ])
