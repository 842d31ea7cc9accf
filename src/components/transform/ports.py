"""
Transform component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from .models import TransformOptions


class ImageTransformerPort(Protocol):
    """Image codec backend. Synchronous; the cache runs it off the event loop."""

    def transform(self, source: bytes, options: TransformOptions) -> bytes:
        """
        Resize/reformat `source` according to `options`.

        Raises:
            TransformError: If the input is corrupt or the format unsupported
        """
        ...
