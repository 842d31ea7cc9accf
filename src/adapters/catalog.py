"""
Bucket Asset Catalog Adapter.

Describes assets from their storage path alone: visibility comes from the
top-level bucket, media type from the file extension. Stands in for the
asset metadata store, which lives outside this service.
"""

from __future__ import annotations

import mimetypes
from pathlib import PurePosixPath

from src.core.entities import DEFAULT_MEDIA_TYPE, Asset

IMAGE_MIMES = [
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/avif",
]
VIDEO_MIMES = [
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
    "video/x-matroska",
    "video/webm",
]
AUDIO_MIMES = [
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "audio/aac",
]
GIF_MIMES = ["image/gif"]
DOC_MIMES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
]

ALLOWED_MIMES = frozenset(IMAGE_MIMES + VIDEO_MIMES + AUDIO_MIMES + GIF_MIMES + DOC_MIMES)

# Extensions the platform registry often lacks or maps differently
EXTENSION_OVERRIDES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".avif": "image/avif",
    ".mkv": "video/x-matroska",
    ".webm": "video/webm",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".aac": "audio/aac",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def media_type_for(relative_path: str) -> str:
    """Media type for a stored file; unknown or disallowed types are octet-stream."""
    suffix = PurePosixPath(relative_path).suffix.lower()
    media_type = EXTENSION_OVERRIDES.get(suffix)
    if media_type is None:
        media_type, _ = mimetypes.guess_type(relative_path, strict=False)
    if media_type is None or media_type not in ALLOWED_MIMES:
        return DEFAULT_MEDIA_TYPE
    return media_type


class BucketAssetCatalog:
    """
    Describes assets by bucket and extension.

    Only the public bucket is public. Everything else, including the
    private bucket and the transform cache, needs a token.
    """

    def __init__(self, public_prefix: str = "public") -> None:
        self.public_prefix = public_prefix.strip("/")

    def bucket_of(self, relative_path: str) -> str:
        return relative_path.split("/", 1)[0]

    def is_private_path(self, relative_path: str) -> bool:
        return self.bucket_of(relative_path) != self.public_prefix

    def describe(self, relative_path: str) -> Asset:
        return Asset(
            relative_path=relative_path,
            visibility="private" if self.is_private_path(relative_path) else "public",
            media_type=media_type_for(relative_path),
        )
