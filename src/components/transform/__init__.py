"""
Transform component - cached on-demand image resize/reformat.
"""

from .component import (
    PARTIAL_SUFFIX,
    THUMBNAIL_WIDTH,
    TransformCache,
)
from .models import (
    DEFAULT_FIT,
    DEFAULT_FORMAT,
    FIT_MODES,
    FORMAT_ALIASES,
    SUPPORTED_FORMATS,
    TransformOptions,
    TransformRequest,
    parse_dimension,
    stable_json,
)
from .ports import ImageTransformerPort

__all__ = [
    # Cache
    "TransformCache",
    "PARTIAL_SUFFIX",
    "THUMBNAIL_WIDTH",
    # Models
    "TransformOptions",
    "TransformRequest",
    "parse_dimension",
    "stable_json",
    # Configuration
    "DEFAULT_FIT",
    "DEFAULT_FORMAT",
    "FIT_MODES",
    "FORMAT_ALIASES",
    "SUPPORTED_FORMATS",
    # Ports
    "ImageTransformerPort",
]
