"""
Signing component - capability tokens for private asset access.
"""

from .component import (
    DEFAULT_TTL_SECONDS,
    TOKEN_HEX_LENGTH,
    TokenService,
    compute_token,
    parse_expires,
)
from .models import SignedCapability
from .ports import ClockPort

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "TOKEN_HEX_LENGTH",
    "ClockPort",
    "SignedCapability",
    "TokenService",
    "compute_token",
    "parse_expires",
]
