"""
Core module - shared infrastructure.

This module contains:
- errors: The exception taxonomy and its HTTP status codes
- responses: The `{success, message, data}` envelope
- utils: Ids, clocks and paging helpers
"""

from keepsake.core.errors import (
    AuthError,
    AuthorizationError,
    KeepsakeError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from keepsake.core.utils import db_now, generate_id, to_db_datetime, utc_now

__all__ = [
    "KeepsakeError",
    "ValidationError",
    "AuthError",
    "AuthorizationError",
    "NotFoundError",
    "UpstreamError",
    "generate_id",
    "utc_now",
    "db_now",
    "to_db_datetime",
]
