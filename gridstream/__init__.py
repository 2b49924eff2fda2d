from .config import FilterConfig, config_from_dict
from .crc import KNOWN_SEEDS, crc16
from .decoder import DecodeResult, GridStreamDecoder, decode, decode_verbose
from .demapper import DemapError, expand_bytes
from .fields import LAYOUTS, FieldLayout
from .framing import build_frame, read_frame
from .packet import DecodedPacket, ExtractedFields, Header, ProtocolGeneration
from .adapters import PDUAdapter

__all__ = [
    "FilterConfig",
    "config_from_dict",
    "KNOWN_SEEDS",
    "crc16",
    "DecodeResult",
    "GridStreamDecoder",
    "decode",
    "decode_verbose",
    "DemapError",
    "expand_bytes",
    "LAYOUTS",
    "FieldLayout",
    "build_frame",
    "read_frame",
    "DecodedPacket",
    "ExtractedFields",
    "Header",
    "ProtocolGeneration",
    "PDUAdapter",
]

__version__ = "0.1.0"
