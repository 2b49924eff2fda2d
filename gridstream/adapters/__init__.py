"""
GridStream host adapters.

    from gridstream.adapters import PDUAdapter
"""
from .pdu_adapter import (
    MIN_SAMPLES,
    PDUAdapter,
    PDUError,
    format_console_line,
    unpack_pdu,
)

__all__ = [
    "MIN_SAMPLES",
    "PDUAdapter",
    "PDUError",
    "format_console_line",
    "unpack_pdu",
]
