"""
Delivery component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class TransformQuery:
    """Raw query values for a transform-and-serve request."""

    path: str | None
    width: str | None = None
    height: str | None = None
    format: str | None = None
    fit: str | None = None
    token: str | None = None
    expires: str | None = None


@dataclass(frozen=True)
class SignedUrl:
    """Issued capability for a private asset, ready to hand to a client."""

    url: str
    token: str
    expires: int  # unix seconds

    @property
    def expires_at_iso(self) -> str:
        return datetime.fromtimestamp(self.expires, UTC).isoformat()
