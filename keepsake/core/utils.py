"""
Shared utility functions.

Database columns hold naive UTC datetimes; tokens and API payloads use
aware ones. The helpers here convert between the two.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "img", "vid")

    Returns:
        A unique ID like "img_a1b2c3d4e5f6..."
    """
    uid = uuid.uuid4().hex
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def db_now() -> datetime:
    """Current UTC time in the naive form stored in the database."""
    return utc_now().replace(tzinfo=None)


def to_db_datetime(value: datetime) -> datetime:
    """Normalize an incoming datetime to naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
