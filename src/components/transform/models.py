"""
Transform component models.

A TransformRequest is (source, width, height, fit, format). Equivalent
requests, including ones that differ only by an omitted vs. explicit
default, normalise to the same value and therefore the same cache key.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any

from src.core.errors import ValidationError

DEFAULT_FORMAT = "webp"
DEFAULT_FIT = "cover"
# Longer digit strings are treated like any other malformed dimension.
MAX_DIMENSION_DIGITS = 18

# format -> served media type
SUPPORTED_FORMATS: dict[str, str] = {
    "webp": "image/webp",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "avif": "image/avif",
    "gif": "image/gif",
    "tiff": "image/tiff",
}

FORMAT_ALIASES: dict[str, str] = {
    "jpg": "jpeg",
    "tif": "tiff",
}

# Same vocabulary as the common image toolkits:
# cover   - fill the box, crop overflow
# contain - fit inside the box, pad the rest
# fill    - stretch to the box, ignore aspect ratio
# inside  - fit inside the box, no padding
# outside - cover the box, no cropping
FIT_MODES: tuple[str, ...] = ("cover", "contain", "fill", "inside", "outside")


def stable_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def parse_dimension(raw: object) -> int | None:
    """Read a width/height query value; anything non-numeric or <= 0 is absent."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if 0 < raw < 10**MAX_DIMENSION_DIGITS else None
    text = str(raw).strip()
    if not (text.isascii() and text.isdigit()) or len(text) > MAX_DIMENSION_DIGITS:
        return None
    value = int(text)
    return value if value > 0 else None


@dataclass(frozen=True)
class TransformOptions:
    """Normalised resize/reformat options."""

    width: int | None = None
    height: int | None = None
    fit: str = DEFAULT_FIT
    format: str = DEFAULT_FORMAT

    @classmethod
    def parse(
        cls,
        *,
        width: object = None,
        height: object = None,
        fit: str | None = None,
        format: str | None = None,
        max_dimension: int | None = None,
    ) -> TransformOptions:
        """
        Build options from raw query values.

        Raises ValidationError for an unknown format or fit, or a dimension
        above `max_dimension`.
        """
        w = parse_dimension(width)
        h = parse_dimension(height)

        if max_dimension is not None:
            for name, value in (("w", w), ("h", h)):
                if value is not None and value > max_dimension:
                    raise ValidationError(f"{name} must not exceed {max_dimension}")

        fmt = (format or DEFAULT_FORMAT).strip().lower()
        fmt = FORMAT_ALIASES.get(fmt, fmt)
        if fmt not in SUPPORTED_FORMATS:
            raise ValidationError(
                f"Unsupported format '{format}'. Supported: {', '.join(sorted(SUPPORTED_FORMATS))}"
            )

        fit_mode = (fit or DEFAULT_FIT).strip().lower()
        if fit_mode not in FIT_MODES:
            raise ValidationError(f"Unsupported fit '{fit}'. Supported: {', '.join(FIT_MODES)}")

        # Fit only matters when resizing.
        if w is None and h is None:
            fit_mode = DEFAULT_FIT

        return cls(width=w, height=h, fit=fit_mode, format=fmt)

    @property
    def media_type(self) -> str:
        return SUPPORTED_FORMATS[self.format]

    @property
    def resizes(self) -> bool:
        return self.width is not None or self.height is not None


@dataclass(frozen=True)
class TransformRequest:
    """A source asset paired with the options to derive from it."""

    source: str  # normalised storage-root-relative path
    options: TransformOptions

    def canonical(self) -> str:
        return stable_json(
            {
                "source": self.source,
                "width": self.options.width,
                "height": self.options.height,
                "fit": self.options.fit,
                "format": self.options.format,
            }
        )

    @property
    def cache_key(self) -> str:
        return hashlib.sha256(self.canonical().encode("utf-8")).hexdigest()

    @property
    def filename(self) -> str:
        return f"{self.cache_key}.{self.options.format}"
