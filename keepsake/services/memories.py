"""
Memories, milestones and the shared timeline.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from keepsake.auth.authorizers import MEMORIES, MILESTONES, PHOTOS
from keepsake.auth.context import AuthContext
from keepsake.auth.visibility import resolve_visibility
from keepsake.core.errors import ValidationError
from keepsake.core.utils import utc_now
from keepsake.db.models import Anniversary, Memory, Milestone, Photo
from keepsake.schemas import MemoryCreate, MemoryUpdate, MilestoneCreate
from keepsake.services.activity import MEMORY_ADDED, log_activity

logger = logging.getLogger(__name__)

LIST_THUMBNAILS = 4


def _with_creator(memory: Memory, **extra: Any) -> dict[str, Any]:
    data = memory.to_dict()
    data["creator_name"] = memory.creator.display_name
    data["creator_avatar"] = memory.creator.avatar
    data.update(extra)
    return data


def _visible_photos(db: Session, photo_ids: list[int], visibility: frozenset[int]) -> list[Photo]:
    """Load photos for linking. Every id must be a photo the caller can see."""
    wanted = set(photo_ids)
    if not wanted:
        return []
    photos = db.execute(
        PHOTOS.scope(select(Photo), visibility).where(Photo.id.in_(wanted))
    ).scalars().all()
    if len(photos) != len(wanted):
        raise ValidationError("One or more photos not found")
    return list(photos)


# =============================================================================
# Memories
# =============================================================================


def list_memories(
    db: Session,
    ctx: AuthContext,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[dict[str, Any]], int]:
    visibility = resolve_visibility(db, ctx.user_id)
    total = db.scalar(MEMORIES.scope(select(func.count(Memory.id)), visibility)) or 0

    stmt = (
        MEMORIES.scope(select(Memory), visibility)
        .order_by(Memory.memory_date.desc(), Memory.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    rows = [
        _with_creator(
            memory,
            photos=[p.thumbnail_path or p.file_path for p in memory.photos[:LIST_THUMBNAILS]],
        )
        for memory in db.execute(stmt).scalars()
    ]
    return rows, total


def get_memory(db: Session, ctx: AuthContext, memory_id: int) -> dict[str, Any]:
    visibility = resolve_visibility(db, ctx.user_id)
    memory = MEMORIES.get_readable(db, memory_id, visibility)
    return _with_creator(
        memory,
        photos=[
            {
                "id": p.id,
                "file_path": p.file_path,
                "thumbnail_path": p.thumbnail_path,
                "caption": p.caption,
            }
            for p in memory.photos
        ],
    )


def on_this_day(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    """
    Photos and memories from today's month and day in earlier years,
    grouped by how many years ago they happened (most recent first).
    """
    visibility = resolve_visibility(db, ctx.user_id)
    today = utc_now().date()

    def same_day(column):
        return (
            (extract("month", column) == today.month)
            & (extract("day", column) == today.day)
            & (extract("year", column) < today.year)
        )

    photos = db.execute(
        PHOTOS.scope(select(Photo), visibility)
        .where(same_day(Photo.photo_date))
        .order_by(Photo.photo_date.desc())
    ).scalars()
    memories = db.execute(
        MEMORIES.scope(select(Memory), visibility)
        .where(same_day(Memory.memory_date))
        .order_by(Memory.memory_date.desc())
    ).scalars()

    groups: dict[int, dict[str, Any]] = {}

    def group(years_ago: int) -> dict[str, Any]:
        return groups.setdefault(years_ago, {"years_ago": years_ago, "photos": [], "memories": []})

    for photo in photos:
        data = photo.to_dict()
        data["uploader_name"] = photo.owner.display_name
        group(today.year - photo.photo_date.year)["photos"].append(data)

    for memory in memories:
        group(today.year - memory.memory_date.year)["memories"].append(
            {**memory.to_dict(), "creator_name": memory.creator.display_name}
        )

    return [groups[k] for k in sorted(groups)]


def create_memory(db: Session, ctx: AuthContext, data: MemoryCreate) -> dict[str, Any]:
    if not data.title or data.memory_date is None:
        raise ValidationError("Title and date are required")

    visibility = resolve_visibility(db, ctx.user_id)
    memory = Memory(
        user_id=ctx.user_id,
        title=data.title,
        description=data.description,
        memory_date=data.memory_date,
        mood=data.mood or "happy",
        is_milestone=data.is_milestone,
    )
    memory.photos = _visible_photos(db, data.photo_ids, visibility)
    db.add(memory)
    db.commit()

    log_activity(db, ctx.user_id, MEMORY_ADDED, memory.id, f"Added a new memory: {memory.title}")
    return memory.to_dict()


def update_memory(db: Session, ctx: AuthContext, memory_id: int, data: MemoryUpdate) -> dict[str, Any]:
    """
    Apply field changes and, when `photo_ids` is given, replace the linked
    photos. Both land in the same commit.
    """
    memory = MEMORIES.get_writable(db, memory_id, ctx)

    changes = data.model_dump(exclude_none=True, exclude={"photo_ids"})
    if not changes and data.photo_ids is None:
        raise ValidationError("No fields to update")

    try:
        for field, value in changes.items():
            setattr(memory, field, value)
        if data.photo_ids is not None:
            visibility = resolve_visibility(db, ctx.user_id)
            memory.photos = _visible_photos(db, data.photo_ids, visibility)
        db.commit()
    except (ValidationError, SQLAlchemyError):
        db.rollback()
        raise

    return memory.to_dict()


def delete_memory(db: Session, ctx: AuthContext, memory_id: int) -> None:
    memory = MEMORIES.get_writable(db, memory_id, ctx)
    db.delete(memory)
    db.commit()


# =============================================================================
# Milestones
# =============================================================================


def list_milestones(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    visibility = resolve_visibility(db, ctx.user_id)
    stmt = MILESTONES.scope(select(Milestone), visibility).order_by(Milestone.milestone_date.desc())
    return [m.to_dict() for m in db.execute(stmt).scalars()]


def create_milestone(db: Session, ctx: AuthContext, data: MilestoneCreate) -> dict[str, Any]:
    if not data.title or data.milestone_date is None:
        raise ValidationError("Title and date are required")

    milestone = Milestone(
        title=data.title,
        description=data.description,
        milestone_date=data.milestone_date,
        icon=data.icon or "💚",
        category=data.category or "other",
        created_by=ctx.user_id,
    )
    db.add(milestone)
    db.commit()
    return milestone.to_dict()


def delete_milestone(db: Session, ctx: AuthContext, milestone_id: int) -> None:
    milestone = MILESTONES.get_writable(db, milestone_id, ctx)
    db.delete(milestone)
    db.commit()


# =============================================================================
# Timeline
# =============================================================================


def timeline(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    """Memories, milestones and anniversaries in one list, newest first."""
    visibility = resolve_visibility(db, ctx.user_id)
    entries: list[dict[str, Any]] = []

    for m in db.execute(MEMORIES.scope(select(Memory), visibility)).scalars():
        entries.append({
            "type": "memory",
            "id": m.id,
            "title": m.title,
            "description": m.description,
            "date": m.memory_date,
            "mood": m.mood,
            "file_path": None,
        })

    for ml in db.execute(MILESTONES.scope(select(Milestone), visibility)).scalars():
        entries.append({
            "type": "milestone",
            "id": ml.id,
            "title": ml.title,
            "description": ml.description,
            "date": ml.milestone_date,
            "mood": ml.category,
            "file_path": ml.icon,
        })

    anniversaries = db.execute(
        select(Anniversary).where(Anniversary.created_by.in_(visibility))
    ).scalars()
    for a in anniversaries:
        entries.append({
            "type": "anniversary",
            "id": a.id,
            "title": a.title,
            "description": a.description,
            "date": a.anniversary_date,
            "mood": f"Year {a.year_number}",
            "file_path": a.cover_photo,
        })

    entries.sort(key=lambda e: e["date"], reverse=True)
    return entries
