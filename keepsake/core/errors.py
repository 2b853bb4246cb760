"""
Error taxonomy.

Every failure a handler can produce maps to exactly one of these. The API
layer turns them into the standard envelope; nothing else about the
exception (type, traceback, SQL) reaches the client.
"""

from __future__ import annotations


class KeepsakeError(Exception):
    """Base class for errors that terminate a request."""

    status_code: int = 400
    default_message: str = "Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(KeepsakeError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(KeepsakeError):
    """Missing, invalid or expired token."""

    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(KeepsakeError):
    """Authenticated, but not allowed to touch this resource."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(KeepsakeError):
    """Resource absent (or not visible to the caller)."""

    status_code = 404
    default_message = "Not found"


class UpstreamError(KeepsakeError):
    """Database or external service failure."""

    status_code = 500
    default_message = "Internal server error"
