"""
Delivery error taxonomy.

Every failure a request can hit is one of these types. Each carries the HTTP
status it maps to and a message that is safe to show the caller; internal
detail goes in the exception args and the logs only.
"""

from __future__ import annotations


class DeliveryError(Exception):
    """Base class for request-level delivery failures."""

    status_code: int = 500
    public_message: str = "Server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.public_message
        super().__init__(self.detail)


class ValidationError(DeliveryError):
    """Missing or malformed request parameter."""

    status_code = 400
    public_message = "Invalid request"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail)
        # Validation messages describe the caller's own input, so they are echoed.
        self.public_message = self.detail


class InvalidPathError(ValidationError):
    """Requested path escapes the storage root or is empty."""

    def __init__(self, path: str | None, reason: str = "Invalid path") -> None:
        self.path = path
        super().__init__(reason)


class AuthError(DeliveryError):
    """Token absent, malformed, mismatched or expired. Never says which."""

    status_code = 403
    public_message = "Invalid or expired token"


class NotFoundError(DeliveryError):
    """Path is valid but no file exists there."""

    status_code = 404
    public_message = "Not found"


class RangeNotSatisfiableError(DeliveryError):
    """Range header cannot be honoured for a file of `total` bytes."""

    status_code = 416
    public_message = "Range not satisfiable"

    def __init__(self, header: str, total: int) -> None:
        self.header = header
        self.total = total
        super().__init__(f"Range {header!r} not satisfiable for {total} bytes")


class TransformError(DeliveryError):
    """Image backend rejected the input or the derived file could not be written."""

    status_code = 500
    public_message = "Transform error"


class ConfigError(Exception):
    """Startup configuration is missing or invalid."""
