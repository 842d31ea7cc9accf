"""
Streaming component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StreamState(str, Enum):
    """Lifecycle of one response body."""

    IDLE = "idle"
    HEADERS_SENT = "headers_sent"
    BODY_COMPLETE = "body_complete"
    ABORTED = "aborted"


# Allowed transitions; terminal states have none.
STREAM_TRANSITIONS: dict[StreamState, frozenset[StreamState]] = {
    StreamState.IDLE: frozenset({StreamState.HEADERS_SENT, StreamState.ABORTED}),
    StreamState.HEADERS_SENT: frozenset({StreamState.BODY_COMPLETE, StreamState.ABORTED}),
    StreamState.BODY_COMPLETE: frozenset(),
    StreamState.ABORTED: frozenset(),
}


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte span: 0 <= start <= end < total."""

    start: int
    end: int
    total: int

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.end < self.total:
            raise ValueError(f"Invalid byte range {self.start}-{self.end}/{self.total}")

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"
