"""
Signing component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode


@dataclass(frozen=True)
class SignedCapability:
    """
    Time-bound read grant for one relative path.

    Never persisted; any holder of the three fields plus the server secret
    can re-derive and check it.
    """

    relative_path: str
    expires_at: int  # unix seconds
    token: str  # hex HMAC-SHA256

    def query_string(self) -> str:
        return urlencode(
            {"path": self.relative_path, "token": self.token, "expires": self.expires_at}
        )
