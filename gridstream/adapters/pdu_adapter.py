"""
PDU adapter: message boundary around the GridStream decoder.

The host hands over one (metadata, samples) pair per burst; accepted packets
go out as (metadata, payload_bytes) to a sink callback, and a console line
(uppercase hex, two tabs, ctime timestamp) is written for each one.

Key points:
- Malformed PDUs are logged and dropped before reaching the decoder
- Decode failures and filter rejections are silent, no error crosses back
- Each PDU is independent; the adapter keeps no per-burst state

Usage:
    adapter = PDUAdapter({"crc_init": "oncor", "meter_id_filter": 0x1A2B3C4D})
    adapter.handle_pdu(({"freq": 915.0e6}, bits))
    for meta, payload in adapter.get_published():
        ...
"""
from __future__ import annotations

from collections import deque
from typing import Any, Callable, Deque, Mapping, Optional, Tuple
import time

import numpy as np

from ..config import FilterConfig, config_from_dict, merged_config
from ..decoder import GridStreamDecoder
from ..demapper import BitBuffer, as_bit_buffer
from ..packet import DecodedPacket

MIN_SAMPLES = 9

Sink = Callable[[Any, bytes], None]


class PDUError(Exception):
    """Inbound message is not a well-formed (metadata, samples) pair."""


def unpack_pdu(pdu: Any) -> Tuple[Any, BitBuffer]:
    """Split and validate a PDU; raises PDUError on malformed input."""
    if not isinstance(pdu, (tuple, list)) or len(pdu) != 2:
        raise PDUError("received unexpected PDU (non-pair)")
    meta, payload = pdu

    if isinstance(payload, (bytes, bytearray)):
        samples = np.frombuffer(bytes(payload), dtype=np.uint8)
    elif isinstance(payload, (np.ndarray, list, tuple)):
        try:
            samples = np.asarray(payload)
        except ValueError:
            raise PDUError("received unexpected PDU (ragged payload)") from None
    else:
        raise PDUError(f"received unexpected PDU (payload type {type(payload).__name__})")

    if samples.ndim != 1 or samples.dtype.kind not in "biu":
        raise PDUError("received unexpected PDU (payload not a uniform integer vector)")
    if samples.size < MIN_SAMPLES:
        raise PDUError(f"PDU too short ({samples.size} samples), probably noise")

    return meta, as_bit_buffer(samples)


def format_console_line(payload: bytes, when: Optional[float] = None) -> str:
    return f"{payload.hex().upper()}\t\t{time.ctime(when)}"


class PDUAdapter:
    """
    Host adapter for per-message decoding.

    Counters are not synchronised; give each worker thread its own adapter.
    """

    def __init__(
        self,
        cfg: Mapping[str, Any] | FilterConfig | None = None,
        sink: Optional[Sink] = None,
        logger: Optional[Callable[[str, object], None]] = None,
        console: Optional[Callable[[str], None]] = print,
        clock: Callable[[], float] = time.time,
    ):
        self._log = logger or (lambda level, msg: None)

        if isinstance(cfg, FilterConfig):
            config = cfg
        else:
            config = config_from_dict(merged_config(cfg))
        self.decoder = GridStreamDecoder(config, logger=self._log)

        self._outbox: Deque[Tuple[Any, bytes]] = deque()
        self._sink: Sink = sink or (lambda meta, payload: self._outbox.append((meta, payload)))
        self._console = console
        self._clock = clock

        self.published = 0
        self.malformed = 0

        self._log("info", f"[Adapter] init crc_enabled={config.crc_enabled} "
                          f"crc_init={config.crc_init:#06x} meter={config.meter_id_filter:#010x} "
                          f"type={config.packet_type_filter:#04x} length={config.packet_length_filter:#06x}")

    @property
    def config(self) -> FilterConfig:
        return self.decoder.config

    # =========================================================================
    # MESSAGE HANDLING
    # =========================================================================

    def handle_pdu(self, pdu: Any) -> Optional[DecodedPacket]:
        """
        Decode one inbound PDU and publish it if accepted.

        Returns the accepted packet (None otherwise) for callers that want it;
        hosts that only wire ports can ignore the return value.
        """
        try:
            meta, samples = unpack_pdu(pdu)
        except PDUError as e:
            self.malformed += 1
            self._log("warn", f"[Adapter] {e}")
            return None

        packet = self.decoder.decode(samples, metadata=meta)
        if packet is None:
            return None

        if self._console is not None:
            line = format_console_line(packet.payload, self._clock())
            self._console(line)
            self._log("msg", line)

        self._sink(packet.metadata, packet.payload)
        self.published += 1
        return packet

    def get_published(self) -> list[Tuple[Any, bytes]]:
        """Retrieve and clear packets collected by the default sink."""
        out = list(self._outbox)
        self._outbox.clear()
        return out

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def stats(self) -> dict:
        decoder_stats = self.decoder.stats
        return {
            "rx": decoder_stats.rx + self.malformed,
            "malformed": self.malformed,
            "decoded": decoder_stats.rx,
            "accepted": decoder_stats.accepted,
            "dropped_decode": decoder_stats.dropped_decode,
            "dropped_filter": decoder_stats.dropped_filter,
            "crc_fail": decoder_stats.crc_fail,
            "published": self.published,
        }
