"""
Token service - signed, expiring capability tokens bound to a relative path.

token = hex(HMAC-SHA256(secret, "<relative_path>:<expires_at>"))

Invariants:
- The path is part of the signed material; a token never verifies for another path
- verify() fails closed and never raises
- Comparison is constant-time over equal-length byte strings
- A token is valid up to and including its expiry second
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re

from src.adapters.clock import SystemClock
from src.core.errors import ValidationError

from .models import SignedCapability
from .ports import ClockPort

logger = logging.getLogger(__name__)

TOKEN_HEX_LENGTH = hashlib.sha256().digest_size * 2
DEFAULT_TTL_SECONDS = 300

# Expiries longer than this are malformed.
MAX_EXPIRES_DIGITS = 18
_EXPIRES_PATTERN = re.compile(rf"[0-9]{{1,{MAX_EXPIRES_DIGITS}}}")


def compute_token(secret: bytes, relative_path: str, expires_at: int) -> str:
    """Derive the hex token for (path, expiry) under `secret`."""
    message = f"{relative_path}:{expires_at}".encode()
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def parse_expires(value: object) -> int | None:
    """Parse an expiry given as int or decimal string; None if malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value < 10**MAX_EXPIRES_DIGITS else None
    if isinstance(value, str):
        text = value.strip()
        if _EXPIRES_PATTERN.fullmatch(text):
            return int(text)
    return None


class TokenService:
    """Issues and verifies capability tokens with a process-wide secret."""

    def __init__(
        self,
        secret: str,
        *,
        clock: ClockPort | None = None,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_ttl_seconds: int | None = None,
    ) -> None:
        if not secret:
            raise ValueError("Signing secret must not be empty")
        self._secret = secret.encode()
        self._clock = clock if clock is not None else SystemClock()
        self.default_ttl_seconds = default_ttl_seconds
        self.max_ttl_seconds = max_ttl_seconds

    def now(self) -> int:
        return int(self._clock.now_utc().timestamp())

    def sign(self, relative_path: str, ttl_seconds: int | None = None) -> SignedCapability:
        """Issue a token for `relative_path` expiring `ttl_seconds` from now."""
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
            raise ValidationError("ttl must be a positive integer")
        if self.max_ttl_seconds is not None and ttl > self.max_ttl_seconds:
            raise ValidationError(f"ttl must not exceed {self.max_ttl_seconds} seconds")

        expires_at = self.now() + ttl
        return SignedCapability(
            relative_path=relative_path,
            expires_at=expires_at,
            token=compute_token(self._secret, relative_path, expires_at),
        )

    def verify(self, relative_path: str, token: object, expires: object) -> bool:
        """
        Check a presented token for `relative_path`.

        Returns False for absent/malformed input, an expired token, or a
        signature mismatch.
        """
        if not token or not isinstance(token, str) or not relative_path:
            return False

        expires_at = parse_expires(expires)
        if expires_at is None:
            return False

        if self.now() > expires_at:
            return False

        expected = compute_token(self._secret, relative_path, expires_at)
        try:
            presented = token.encode("ascii")
        except UnicodeEncodeError:
            return False

        return hmac.compare_digest(expected.encode("ascii"), presented)
