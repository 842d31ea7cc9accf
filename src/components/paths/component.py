"""
Path resolver - maps caller-supplied relative paths into the storage root.

Invariants:
- Separators are normalised and redundant segments collapsed before any check
- Containment is decided on the resolved absolute path, never by substring scan
- Empty paths, absolute paths and NUL bytes are rejected outright
- A resolved path stays in the top-level bucket its name claims
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path, PureWindowsPath

from src.core.errors import InvalidPathError

from .models import ResolvedPath

logger = logging.getLogger(__name__)


def normalize_relative_path(raw: str | None) -> str:
    """
    Lexically canonicalise a relative path.

    Touches no filesystem state, so it is safe to run before token checks.
    Raises InvalidPathError if the result is empty or climbs above the root.
    """
    if raw is None or not raw.strip():
        raise InvalidPathError(raw, "Missing path")

    if "\x00" in raw:
        raise InvalidPathError(raw)

    candidate = raw.strip().replace("\\", "/")

    # Absolute POSIX paths and Windows drive / UNC prefixes are never relative.
    if candidate.startswith("/") or PureWindowsPath(candidate).drive:
        raise InvalidPathError(raw)

    normalized = posixpath.normpath(candidate)

    if normalized in (".", "") or normalized == ".." or normalized.startswith("../"):
        logger.warning("Rejected path climbing above storage root: %r", raw)
        raise InvalidPathError(raw)

    return normalized


class PathResolver:
    """Resolves relative asset paths against a fixed storage root."""

    def __init__(self, storage_root: str | Path) -> None:
        self.root = Path(storage_root).resolve()

    def normalize(self, raw: str | None) -> str:
        return normalize_relative_path(raw)

    def resolve(self, raw: str | None) -> ResolvedPath:
        """
        Canonicalise `raw` and return its location inside the storage root.

        Symlinks are followed, so a link pointing outside the root is rejected
        the same way a `..` sequence is. A link may not cross into another
        top-level bucket either.
        """
        relative = normalize_relative_path(raw)
        absolute = (self.root / relative).resolve()

        try:
            absolute.relative_to(self.root)
        except ValueError:
            logger.warning("Rejected path escaping storage root: %r", raw)
            raise InvalidPathError(raw) from None

        if absolute == self.root:
            raise InvalidPathError(raw)

        resolved = ResolvedPath(relative=relative, absolute=absolute)
        target_bucket = absolute.relative_to(self.root).parts[0]
        if target_bucket != resolved.bucket:
            logger.warning(
                "Rejected path linking from %s into %s: %r", resolved.bucket, target_bucket, raw
            )
            raise InvalidPathError(raw)

        return resolved
