"""
CRC-16 used by GridStream packets.

CCITT polynomial, MSB first, no reflection and no final XOR. The seed differs
per utility deployment, so it is always a parameter.
"""
from __future__ import annotations

from typing import Iterable

CRC_POLY = 0x1021
CRC_XOROUT = 0x0000

HEADER_LEN = 4
CRC_LEN = 2

# Seeds observed on known deployments
KNOWN_SEEDS: dict[str, int] = {
    "coserv": 0x45F8,
    "oncor": 0x5FD6,
    "hydro_quebec": 0x62C1,
}


def crc16(data: Iterable[int], init: int = 0x0000, poly: int = CRC_POLY, xorout: int = CRC_XOROUT) -> int:
    crc = init & 0xFFFF
    for byte in data:
        crc ^= (byte & 0xFF) << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ poly) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc ^ xorout


def packet_crc(decoded: bytes, init: int) -> int:
    """CRC over the payload, header and trailing CRC bytes excluded."""
    return crc16(decoded[HEADER_LEN:len(decoded) - CRC_LEN], init)


def received_crc(decoded: bytes, packet_length: int) -> int:
    """Big-endian CRC stored right after the payload."""
    return (decoded[packet_length + 2] << 8) | decoded[packet_length + 3]
