"""
Domain entities for asset delivery.

Assets are created by the upload flow and never mutated here; this service
only reads them. Visibility decides whether a capability token is needed.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

Visibility = Literal["public", "private"]

DEFAULT_MEDIA_TYPE = "application/octet-stream"


class Asset(BaseModel):
    """
    Stored binary identified by its storage-root-relative POSIX path.

    The path is already normalised (no `..`, no leading slash).
    """

    model_config = ConfigDict(frozen=True)

    relative_path: str
    visibility: Visibility
    media_type: str = DEFAULT_MEDIA_TYPE

    @property
    def is_private(self) -> bool:
        return self.visibility == "private"
