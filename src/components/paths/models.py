"""
Path resolution models.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ResolvedPath:
    """A caller-supplied path after canonicalisation and containment checks."""

    relative: str  # normalised POSIX form, e.g. "private/2025/11/24/a.png"
    absolute: Path  # inside the storage root

    @property
    def bucket(self) -> str:
        """Top-level storage partition ("public", "private", ...)."""
        return self.relative.split("/", 1)[0]
