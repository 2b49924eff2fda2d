"""
Acceptance filter.

Pure predicates over a decoded packet and the FilterConfig. Every predicate is
switched off by its sentinel (0, or crc_enabled=False), so a sentinel can only
widen what gets through.
"""
from __future__ import annotations

from .config import FilterConfig
from .packet import ExtractedFields, Header


def crc_predicate(config: FilterConfig, crc_match: bool) -> bool:
    return crc_match or not config.crc_enabled


def meter_predicate(config: FilterConfig, fields: ExtractedFields) -> bool:
    wanted = config.meter_id_filter
    return wanted == 0 or fields.meter_id == wanted or fields.meter_id_secondary == wanted


def length_predicate(config: FilterConfig, header: Header) -> bool:
    wanted = config.packet_length_filter
    return wanted == 0 or header.packet_length == wanted


def type_predicate(config: FilterConfig, header: Header) -> bool:
    wanted = config.packet_type_filter
    return wanted == 0 or header.packet_type == wanted


def rejections(config: FilterConfig, header: Header, fields: ExtractedFields,
               crc_match: bool) -> tuple[str, ...]:
    """Names of the predicates that fail, for diagnostics."""
    failed = []
    if not crc_predicate(config, crc_match):
        failed.append("crc")
    if not meter_predicate(config, fields):
        failed.append("meter_id")
    if not length_predicate(config, header):
        failed.append("packet_length")
    if not type_predicate(config, header):
        failed.append("packet_type")
    return tuple(failed)


def accepts(config: FilterConfig, header: Header, fields: ExtractedFields, crc_match: bool) -> bool:
    return (
        crc_predicate(config, crc_match)
        and meter_predicate(config, fields)
        and length_predicate(config, header)
        and type_predicate(config, header)
    )
