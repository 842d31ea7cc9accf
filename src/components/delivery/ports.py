"""
Delivery component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from src.core.entities import Asset


class AssetCatalogPort(Protocol):
    """Read-only view of asset metadata (visibility, declared media type)."""

    def describe(self, relative_path: str) -> Asset:
        """Describe the asset stored at a normalised relative path."""
        ...
