"""
Streaming component - byte-range aware file responses.
"""

from .component import (
    DEFAULT_CHUNK_SIZE,
    RangeStream,
    RangeStreamer,
    parse_range_header,
)
from .models import STREAM_TRANSITIONS, ByteRange, StreamState

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "STREAM_TRANSITIONS",
    "ByteRange",
    "RangeStream",
    "RangeStreamer",
    "StreamState",
    "parse_range_header",
]
