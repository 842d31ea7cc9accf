"""
Signing component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    """Source of the current time (injectable for deterministic tests)."""

    def now_utc(self) -> datetime:
        """Return current UTC time (timezone-aware)."""
        ...
