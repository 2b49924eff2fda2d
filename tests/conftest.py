"""
Pytest configuration for GridStream decoder tests.

Provides synthetic packet builders: frames are assembled with build_frame()
and line-coded with expand_bytes(), so tests exercise the real decode path.
"""
import pytest
import sys
from pathlib import Path

# Ensure gridstream package is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from gridstream.framing import build_frame

ONCOR_SEED = 0x5FD6
METER_ID = 0x1A2B3C4D
SECONDARY_ID = 0x00C0FFEE
UP_TIME = 0x0001E240


def make_uptime_frame(meter_id: int = METER_ID, up_time: int = UP_TIME,
                      crc_init: int = ONCOR_SEED) -> bytes:
    """Type 0x55, length 0x0023: up_time at bytes 18-21, meter_id at 24-27."""
    body = bytearray(range(0x10, 0x10 + 33))
    body[14:18] = up_time.to_bytes(4, "big")
    body[20:24] = meter_id.to_bytes(4, "big")
    return build_frame(0x55, bytes(body), crc_init)


def make_dual_id_frame(meter_id: int = METER_ID, secondary: int = SECONDARY_ID,
                       crc_init: int = ONCOR_SEED, body_len: int = 20) -> bytes:
    """Type 0xD5: secondary id at bytes 5-8, meter_id at 9-12."""
    body = bytearray(b"\xA5" * body_len)
    body[1:5] = secondary.to_bytes(4, "big")
    body[5:9] = meter_id.to_bytes(4, "big")
    return build_frame(0xD5, bytes(body), crc_init)


@pytest.fixture
def uptime_frame() -> bytes:
    return make_uptime_frame()


@pytest.fixture
def dual_id_frame() -> bytes:
    return make_dual_id_frame()


@pytest.fixture
def make_uptime():
    return make_uptime_frame


@pytest.fixture
def make_dual_id():
    return make_dual_id_frame
