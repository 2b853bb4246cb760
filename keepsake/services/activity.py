"""
Activity log.

Entries are written after the primary change has committed, in their own
transaction. Losing one is acceptable; failing the request because of one
is not.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from keepsake.db.models import ActivityLog

logger = logging.getLogger(__name__)

PHOTO_UPLOAD = "photo_upload"
MEMORY_ADDED = "memory_added"
MESSAGE_SENT = "message_sent"
LOVE_NOTE_SENT = "love_note_sent"
ANNIVERSARY_ADDED = "anniversary_added"


def log_activity(
    db: Session,
    user_id: int,
    activity_type: str,
    reference_id: int | None,
    description: str,
) -> None:
    """Best-effort audit write."""
    try:
        db.add(ActivityLog(
            user_id=user_id,
            activity_type=activity_type,
            reference_id=reference_id,
            description=description[:500],
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Activity log write failed (%s for user %s)",
            activity_type,
            user_id,
            exc_info=True,
        )
