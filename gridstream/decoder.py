"""
GridStream decode pipeline.

The core is a pure function:
    decode(raw, config, metadata) -> DecodedPacket | None

demap -> frame -> fields -> CRC -> filter. Any stage may drop the burst, and a
drop looks the same to the caller whichever stage caused it.

GridStreamDecoder wraps the pure pipeline with a fixed config, logging and
counters, for adapters that want them.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Callable

from .config import FilterConfig
from .crc import packet_crc, received_crc
from .demapper import RawSamples, as_bit_buffer
from .fields import extract_fields
from .filter import accepts, rejections
from .framing import read_frame
from .packet import DecodedPacket

# Stage names reported by decode_verbose()
STAGE_FRAME = "frame"
STAGE_LAYOUT = "layout"
STAGE_FILTER = "filter"
STAGE_ACCEPTED = "accepted"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of one burst, with the stage that decided it."""

    stage: str
    packet: DecodedPacket | None = None
    detail: tuple[str, ...] = ()
    crc_ok: bool | None = None

    @property
    def accepted(self) -> bool:
        return self.packet is not None


def decode_verbose(raw: RawSamples, config: FilterConfig, metadata: Any = None) -> DecodeResult:
    try:
        bits = as_bit_buffer(raw)
    except ValueError:
        return DecodeResult(STAGE_FRAME)

    frame = read_frame(bits)
    if frame is None:
        return DecodeResult(STAGE_FRAME)

    header = frame.header
    fields = extract_fields(frame.data, header)
    if fields is None:
        return DecodeResult(STAGE_LAYOUT, detail=(f"type={header.packet_type:#04x}",
                                                  f"length={header.packet_length:#06x}"))

    crc_rx = received_crc(frame.data, header.packet_length)
    crc_calc = packet_crc(frame.data, config.crc_init)
    crc_match = crc_rx == crc_calc

    if not accepts(config, header, fields, crc_match):
        return DecodeResult(STAGE_FILTER, detail=rejections(config, header, fields, crc_match),
                            crc_ok=crc_match)

    packet = DecodedPacket(
        metadata=metadata,
        payload=frame.data[:header.packet_length + 4],
        generation=frame.generation,
        header=header,
        fields=fields,
        crc_received=crc_rx,
        crc_computed=crc_calc,
    )
    return DecodeResult(STAGE_ACCEPTED, packet=packet, crc_ok=crc_match)


def decode(raw: RawSamples, config: FilterConfig, metadata: Any = None) -> DecodedPacket | None:
    """Decode one burst; None if it is malformed or filtered out."""
    return decode_verbose(raw, config, metadata).packet


@dataclass
class DecodeStats:
    rx: int = 0
    accepted: int = 0
    dropped_decode: int = 0
    dropped_filter: int = 0
    crc_fail: int = 0


class GridStreamDecoder:
    """
    Decoder bound to one FilterConfig.

    Usage:
        decoder = GridStreamDecoder(FilterConfig(crc_init=0x5FD6))
        packet = decoder.decode(bits, metadata={"freq": 915e6})
        if packet is not None:
            forward(packet.metadata, packet.payload)
    """

    def __init__(self, config: FilterConfig | None = None,
                 logger: Callable[[str, object], None] | None = None) -> None:
        self._config = config or FilterConfig()
        self.log = logger or (lambda level, payload: None)
        self._stats = DecodeStats()

    @property
    def config(self) -> FilterConfig:
        return self._config

    @property
    def stats(self) -> DecodeStats:
        return DecodeStats(**asdict(self._stats))

    def decode(self, raw: RawSamples, metadata: Any = None) -> DecodedPacket | None:
        result = decode_verbose(raw, self._config, metadata)
        self._record(result)
        return result.packet

    def _record(self, result: DecodeResult) -> None:
        stats = self._stats
        stats.rx += 1
        if result.crc_ok is False:
            stats.crc_fail += 1

        if result.stage == STAGE_ACCEPTED:
            stats.accepted += 1
            self.log("debug", f"[Decoder] accepted type={result.packet.packet_type:#04x} "
                              f"meter={result.packet.meter_id:#010x} crc_ok={result.packet.crc_ok}")
        elif result.stage == STAGE_FILTER:
            stats.dropped_filter += 1
            self.log("debug", f"[Decoder] filtered: {', '.join(result.detail)}")
        else:
            stats.dropped_decode += 1
            reason = " ".join(result.detail)
            self.log("debug", f"[Decoder] dropped at {result.stage} {reason}".rstrip())

        self.log("metric", {"event": "decode", **asdict(stats)})
