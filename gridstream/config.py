"""
Decoder configuration.

FilterConfig is fixed at construction. config_from_dict() builds one from a
plain dict (adapter cfg, CLI flags), and merged_config() lets the
GRIDSTREAM_CFG environment variable override a base dict with JSON.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
import json
import os

from .crc import KNOWN_SEEDS

ENV_VAR = "GRIDSTREAM_CFG"

# Alternate spellings accepted in dict configs
_ALIASES = {
    "crc_enable": "crc_enabled",
    "crc_initial_value": "crc_init",
    "meter_monitor_id": "meter_id_filter",
    "meter_id": "meter_id_filter",
    "packet_type": "packet_type_filter",
    "packet_length": "packet_length_filter",
}

_FIELDS = ("crc_enabled", "crc_init", "meter_id_filter", "packet_type_filter", "packet_length_filter")


@dataclass(frozen=True)
class FilterConfig:
    crc_enabled: bool = True
    crc_init: int = 0x0000
    meter_id_filter: int = 0        # 0 = any meter
    packet_type_filter: int = 0     # 0 = any type
    packet_length_filter: int = 0   # 0 = any length

    def __post_init__(self) -> None:
        _check_range("crc_init", self.crc_init, 0xFFFF)
        _check_range("meter_id_filter", self.meter_id_filter, 0xFFFFFFFF)
        _check_range("packet_type_filter", self.packet_type_filter, 0xFF)
        _check_range("packet_length_filter", self.packet_length_filter, 0xFFFF)


def _check_range(name: str, value: int, upper: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value <= upper:
        raise ValueError(f"{name} must be in [0, {upper:#x}], got {value:#x}")


def parse_int(value: Any) -> int:
    """Accept ints and decimal/hex strings ("35", "0x23")."""
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip(), 0)
    raise ValueError(f"expected an integer, got {value!r}")


def crc_seed(value: Any) -> int:
    """Resolve a CRC seed given as int, numeric string or preset name."""
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        if key in KNOWN_SEEDS:
            return KNOWN_SEEDS[key]
    try:
        return parse_int(value)
    except ValueError:
        raise ValueError(
            f"unknown CRC seed {value!r}; use a number or one of {sorted(KNOWN_SEEDS)}"
        ) from None


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"expected a boolean, got {value!r}")
    return bool(value)


def config_from_dict(d: Mapping[str, Any] | None) -> FilterConfig:
    values: dict[str, Any] = {}
    for key, value in (d or {}).items():
        name = _ALIASES.get(key, key)
        if name in _FIELDS:
            values[name] = value

    kwargs: dict[str, Any] = {}
    if "crc_enabled" in values:
        kwargs["crc_enabled"] = parse_bool(values["crc_enabled"])
    if "crc_init" in values:
        kwargs["crc_init"] = crc_seed(values["crc_init"])
    for name in ("meter_id_filter", "packet_type_filter", "packet_length_filter"):
        if name in values:
            kwargs[name] = parse_int(values[name])
    return FilterConfig(**kwargs)


def merged_config(base: Mapping[str, Any] | None, environ: Mapping[str, str] | None = None) -> dict:
    """Merge base cfg with optional JSON in GRIDSTREAM_CFG."""
    cfg: dict = dict(base or {})
    env = os.environ if environ is None else environ
    raw = env.get(ENV_VAR)
    if raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            cfg.update(parsed)
    return cfg
