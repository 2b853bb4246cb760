"""
Persistence: SQLAlchemy engine/session plumbing and ORM models.
"""

from keepsake.db.database import (
    Base,
    get_db,
    init_db,
    make_engine,
    make_session_factory,
)
from keepsake.db.models import (
    ActivityLog,
    Anniversary,
    Countdown,
    LoveNote,
    Memory,
    Message,
    Milestone,
    Photo,
    PhotoComment,
    PhotoReaction,
    User,
    memory_photos,
)

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "make_engine",
    "make_session_factory",
    "ActivityLog",
    "Anniversary",
    "Countdown",
    "LoveNote",
    "Memory",
    "Message",
    "Milestone",
    "Photo",
    "PhotoComment",
    "PhotoReaction",
    "User",
    "memory_photos",
]
