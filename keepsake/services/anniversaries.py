"""
Anniversaries and countdowns.

Anniversary rows are shared by every account: any authenticated user can
read, edit or delete them. The photos and memories shown alongside an
anniversary still go through the caller's visibility set.
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from datetime import date
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from keepsake.auth.authorizers import ANNIVERSARIES, COUNTDOWNS, MEMORIES, PHOTOS
from keepsake.auth.context import AuthContext
from keepsake.auth.visibility import resolve_visibility
from keepsake.core.errors import ValidationError
from keepsake.core.utils import db_now, to_db_datetime
from keepsake.db.models import Anniversary, Countdown, Memory, Photo
from keepsake.schemas import AnniversaryCreate, AnniversaryUpdate, CountdownCreate
from keepsake.services.activity import ANNIVERSARY_ADDED, log_activity

logger = logging.getLogger(__name__)

DETAIL_PHOTO_LIMIT = 20


def shift_months(day: date, months: int) -> date:
    """Move `day` by whole months, clamping to the end of shorter months."""
    index = day.year * 12 + day.month - 1 + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _photo_counts(db: Session, visibility: frozenset[int]) -> Counter[int]:
    rows = db.execute(
        PHOTOS.scope(select(Photo.anniversary_id), visibility).where(Photo.anniversary_id.is_not(None))
    ).scalars()
    return Counter(rows)


def _with_counts(anniversary: Anniversary, counts: Counter[int], **extra: Any) -> dict[str, Any]:
    data = anniversary.to_dict()
    data["photo_count"] = counts[anniversary.id]
    data["created_by_name"] = anniversary.creator.display_name
    data.update(extra)
    return data


# =============================================================================
# Anniversaries
# =============================================================================


def list_anniversaries(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    counts = _photo_counts(db, resolve_visibility(db, ctx.user_id))
    stmt = select(Anniversary).order_by(Anniversary.anniversary_date.desc())
    return [_with_counts(a, counts) for a in db.execute(stmt).scalars()]


def get_anniversary(db: Session, ctx: AuthContext, anniversary_id: int) -> dict[str, Any]:
    """An anniversary with its photos and the memories within a month of it."""
    anniversary = ANNIVERSARIES.get_readable(db, anniversary_id)
    visibility = resolve_visibility(db, ctx.user_id)

    photos = db.execute(
        PHOTOS.scope(select(Photo), visibility)
        .where(Photo.anniversary_id == anniversary.id)
        .order_by(Photo.photo_date.asc(), Photo.id.asc())
        .limit(DETAIL_PHOTO_LIMIT)
    ).scalars()

    day = anniversary.anniversary_date
    memories = db.execute(
        MEMORIES.scope(select(Memory), visibility)
        .where(Memory.memory_date.between(shift_months(day, -1), shift_months(day, 1)))
        .order_by(Memory.memory_date.asc())
    ).scalars()

    data = anniversary.to_dict()
    data["created_by_name"] = anniversary.creator.display_name
    data["photos"] = [
        {
            "id": p.id,
            "file_path": p.file_path,
            "thumbnail_path": p.thumbnail_path,
            "caption": p.caption,
            "photo_date": p.photo_date,
        }
        for p in photos
    ]
    data["memories"] = [
        {"id": m.id, "title": m.title, "memory_date": m.memory_date, "mood": m.mood}
        for m in memories
    ]
    return data


def current_anniversary(db: Session, ctx: AuthContext) -> dict[str, Any] | None:
    """The anniversary closest to today, past or upcoming."""
    today = db_now().date()
    anniversaries = db.execute(select(Anniversary)).scalars().all()
    if not anniversaries:
        return None

    closest = min(
        anniversaries,
        key=lambda a: (abs((a.anniversary_date - today).days), a.anniversary_date),
    )
    counts = _photo_counts(db, resolve_visibility(db, ctx.user_id))
    return _with_counts(closest, counts, days_until=(closest.anniversary_date - today).days)


def create_anniversary(db: Session, ctx: AuthContext, data: AnniversaryCreate) -> dict[str, Any]:
    if not data.title or data.anniversary_date is None or data.year_number is None:
        raise ValidationError("Title, date, and year number are required")

    anniversary = Anniversary(
        title=data.title,
        anniversary_date=data.anniversary_date,
        description=data.description,
        year_number=data.year_number,
        cover_photo=data.cover_photo,
        created_by=ctx.user_id,
    )
    db.add(anniversary)
    db.commit()

    log_activity(db, ctx.user_id, ANNIVERSARY_ADDED, anniversary.id, f"Added anniversary: {anniversary.title}")
    return anniversary.to_dict()


def update_anniversary(
    db: Session,
    ctx: AuthContext,
    anniversary_id: int,
    data: AnniversaryUpdate,
) -> dict[str, Any]:
    anniversary = ANNIVERSARIES.get_writable(db, anniversary_id)

    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    for field, value in changes.items():
        setattr(anniversary, field, value)
    db.commit()
    logger.info(f"User {ctx.user_id} updated anniversary {anniversary_id}")
    return anniversary.to_dict()


def delete_anniversary(db: Session, ctx: AuthContext, anniversary_id: int) -> None:
    """Delete the anniversary. Its photos are kept and unfiled."""
    anniversary = ANNIVERSARIES.get_writable(db, anniversary_id)

    db.execute(
        update(Photo)
        .where(Photo.anniversary_id == anniversary.id)
        .values(anniversary_id=None)
        .execution_options(synchronize_session="fetch")
    )
    db.delete(anniversary)
    db.commit()
    logger.info(f"User {ctx.user_id} deleted anniversary {anniversary_id}")


# =============================================================================
# Countdowns
# =============================================================================


def list_countdowns(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    """Upcoming countdowns only, soonest first."""
    visibility = resolve_visibility(db, ctx.user_id)
    now = db_now()
    stmt = (
        COUNTDOWNS.scope(select(Countdown), visibility)
        .where(Countdown.target_date > now)
        .order_by(Countdown.target_date.asc())
    )
    results = []
    for countdown in db.execute(stmt).scalars():
        data = countdown.to_dict()
        data["seconds_until"] = int((countdown.target_date - now).total_seconds())
        data["created_by_name"] = countdown.creator.display_name
        results.append(data)
    return results


def create_countdown(db: Session, ctx: AuthContext, data: CountdownCreate) -> dict[str, Any]:
    if not data.title or data.target_date is None:
        raise ValidationError("Title and target date are required")

    countdown = Countdown(
        title=data.title,
        target_date=to_db_datetime(data.target_date),
        description=data.description,
        icon=data.icon or "💚",
        created_by=ctx.user_id,
        is_recurring=data.is_recurring,
        recurrence_type=data.recurrence_type,
    )
    db.add(countdown)
    db.commit()
    return countdown.to_dict()


def delete_countdown(db: Session, ctx: AuthContext, countdown_id: int) -> None:
    countdown = COUNTDOWNS.get_writable(db, countdown_id, ctx)
    db.delete(countdown)
    db.commit()
