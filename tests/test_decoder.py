from __future__ import annotations

import numpy as np
import pytest

from gridstream.config import FilterConfig
from gridstream.decoder import GridStreamDecoder, decode, decode_verbose
from gridstream.demapper import expand_bytes
from gridstream.framing import build_frame
from gridstream.packet import ProtocolGeneration

from conftest import METER_ID, ONCOR_SEED, SECONDARY_ID, UP_TIME


def _corrupt_crc(frame: bytes) -> bytes:
    return frame[:-1] + bytes([frame[-1] ^ 0xFF])


class TestScenarios:
    """End-to-end decode of synthetic bursts."""

    def test_scenario_a_uptime_packet_emitted(self, uptime_frame):
        config = FilterConfig(crc_init=ONCOR_SEED, meter_id_filter=0)
        packet = decode(expand_bytes(uptime_frame), config, metadata={"freq": 915.0e6})
        assert packet is not None
        assert packet.payload == uptime_frame
        assert packet.meter_id == METER_ID
        assert packet.fields.up_time == UP_TIME
        assert packet.metadata == {"freq": 915.0e6}
        assert packet.crc_ok

    def test_scenario_b_meter_mismatch_dropped(self, uptime_frame):
        config = FilterConfig(crc_init=ONCOR_SEED, meter_id_filter=0x0BADBEEF)
        assert decode(expand_bytes(uptime_frame), config) is None

    @pytest.mark.parametrize("config", [
        FilterConfig(crc_enabled=False),
        FilterConfig(crc_init=ONCOR_SEED, packet_type_filter=0x99),
        FilterConfig(crc_enabled=False, meter_id_filter=METER_ID),
    ])
    def test_scenario_c_unknown_type_dropped(self, config):
        body = bytearray(33)
        body[20:24] = METER_ID.to_bytes(4, "big")
        raw = expand_bytes(build_frame(0x99, bytes(body), ONCOR_SEED))
        result = decode_verbose(raw, config)
        assert result.packet is None
        assert result.stage == "layout"

    def test_scenario_d_crc_disabled_accepts_corrupt_crc(self, uptime_frame):
        raw = expand_bytes(_corrupt_crc(uptime_frame))
        packet = decode(raw, FilterConfig(crc_enabled=False, crc_init=ONCOR_SEED))
        assert packet is not None
        assert not packet.crc_ok

    def test_corrupt_crc_dropped_when_enabled(self, uptime_frame):
        raw = expand_bytes(_corrupt_crc(uptime_frame))
        result = decode_verbose(raw, FilterConfig(crc_init=ONCOR_SEED))
        assert result.packet is None
        assert result.stage == "filter"
        assert result.detail == ("crc",)


class TestDecode:
    """Generation handling, metadata and boundaries."""

    @pytest.mark.parametrize("generation", list(ProtocolGeneration))
    def test_round_trip_both_generations(self, dual_id_frame, generation):
        packet = decode(expand_bytes(dual_id_frame, generation), FilterConfig(crc_init=ONCOR_SEED))
        assert packet is not None
        assert packet.generation is generation
        assert packet.payload == dual_id_frame
        assert packet.fields.meter_id_secondary == SECONDARY_ID

    def test_filter_on_secondary_id(self, dual_id_frame):
        config = FilterConfig(crc_init=ONCOR_SEED, meter_id_filter=SECONDARY_ID)
        assert decode(expand_bytes(dual_id_frame), config) is not None

    def test_payload_truncated_to_packet_length(self, uptime_frame):
        packet = decode(expand_bytes(uptime_frame, idle_bits=200), FilterConfig(crc_init=ONCOR_SEED))
        assert packet is not None
        assert len(packet.payload) == 0x23 + 4
        assert packet.hex() == uptime_frame.hex().upper()

    def test_nine_samples_decode_to_nothing(self):
        assert decode(np.zeros(9, dtype=np.uint8), FilterConfig(crc_enabled=False)) is None
        assert decode(np.ones(9, dtype=np.uint8), FilterConfig(crc_enabled=False)) is None

    def test_accepts_lists_and_bytes(self, uptime_frame):
        raw = expand_bytes(uptime_frame)
        config = FilterConfig(crc_init=ONCOR_SEED)
        assert decode(raw.tolist(), config) is not None
        assert decode(raw.tobytes(), config) is not None

    def test_non_vector_input_dropped(self):
        assert decode(np.zeros((20, 20), dtype=np.uint8), FilterConfig()) is None

    def test_decode_is_repeatable(self, uptime_frame):
        raw = expand_bytes(uptime_frame)
        config = FilterConfig(crc_init=ONCOR_SEED)
        assert decode(raw, config) == decode(raw, config)


class TestGridStreamDecoder:
    """Stateful wrapper: counters and logging."""

    def test_counts_outcomes(self, uptime_frame):
        decoder = GridStreamDecoder(FilterConfig(crc_init=ONCOR_SEED, packet_type_filter=0x55))
        decoder.decode(expand_bytes(uptime_frame))
        decoder.decode(expand_bytes(_corrupt_crc(uptime_frame)))
        decoder.decode(np.zeros(9, dtype=np.uint8))
        decoder.decode(expand_bytes(build_frame(0xD5, bytes(20), ONCOR_SEED)))

        stats = decoder.stats
        assert stats.rx == 4
        assert stats.accepted == 1
        assert stats.dropped_filter == 2
        assert stats.dropped_decode == 1
        assert stats.crc_fail == 1

    def test_stats_snapshot_is_a_copy(self):
        decoder = GridStreamDecoder()
        snapshot = decoder.stats
        decoder.decode(np.zeros(9, dtype=np.uint8))
        assert snapshot.rx == 0
        assert decoder.stats.rx == 1

    def test_logs_drop_reason_and_metric(self, uptime_frame):
        entries = []
        decoder = GridStreamDecoder(FilterConfig(crc_init=ONCOR_SEED, meter_id_filter=1),
                                    logger=lambda level, payload: entries.append((level, payload)))
        assert decoder.decode(expand_bytes(uptime_frame)) is None

        debug = [p for lvl, p in entries if lvl == "debug"]
        metrics = [p for lvl, p in entries if lvl == "metric"]
        assert debug == ["[Decoder] filtered: meter_id"]
        assert metrics[-1]["event"] == "decode"
        assert metrics[-1]["dropped_filter"] == 1

    def test_default_config(self):
        assert GridStreamDecoder().config == FilterConfig()
