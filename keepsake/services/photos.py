"""
Photos: the shared gallery.

Everything here is read through the caller's visibility set. Only the
uploader may edit or delete a photo; a partner may favorite, react and
comment.
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from datetime import date
from typing import Any

from sqlalchemy import Select, extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from keepsake.auth.authorizers import PHOTOS
from keepsake.auth.context import AuthContext
from keepsake.auth.visibility import resolve_visibility
from keepsake.core.errors import ValidationError
from keepsake.db.models import (
    Anniversary,
    Memory,
    Message,
    Photo,
    PhotoComment,
    PhotoReaction,
)
from keepsake.schemas import CommentRequest, PhotoUpdate, ReactionRequest
from keepsake.services.activity import PHOTO_UPLOAD, log_activity
from keepsake.storage.media import MediaStore, Upload

logger = logging.getLogger(__name__)


def _with_uploader(photo: Photo, **extra: Any) -> dict[str, Any]:
    data = photo.to_dict()
    data["uploader_name"] = photo.owner.display_name
    data["uploader_avatar"] = photo.owner.avatar
    data.update(extra)
    return data


def _with_author(row: PhotoReaction | PhotoComment) -> dict[str, Any]:
    data = row.to_dict()
    data["display_name"] = row.user.display_name
    data["avatar"] = row.user.avatar
    return data


def _ensure_anniversary(db: Session, anniversary_id: int | None) -> None:
    if anniversary_id is not None and db.get(Anniversary, anniversary_id) is None:
        raise ValidationError("Anniversary not found")


# =============================================================================
# Queries
# =============================================================================


def list_photos(
    db: Session,
    ctx: AuthContext,
    page: int = 1,
    limit: int = 20,
    anniversary_id: int | None = None,
    year: int | None = None,
    month: int | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """
    One page of visible photos, newest first.

    Returns (rows, total) where total counts every matching photo.
    """
    visibility = resolve_visibility(db, ctx.user_id)

    def filtered(stmt: Select) -> Select:
        stmt = PHOTOS.scope(stmt, visibility)
        if anniversary_id:
            stmt = stmt.where(Photo.anniversary_id == anniversary_id)
        if year:
            stmt = stmt.where(extract("year", Photo.photo_date) == year)
        if month:
            stmt = stmt.where(extract("month", Photo.photo_date) == month)
        return stmt

    total = db.scalar(filtered(select(func.count(Photo.id))))

    reaction_count = (
        select(func.count(PhotoReaction.id))
        .where(PhotoReaction.photo_id == Photo.id)
        .scalar_subquery()
    )
    comment_count = (
        select(func.count(PhotoComment.id))
        .where(PhotoComment.photo_id == Photo.id)
        .scalar_subquery()
    )
    my_reaction = (
        select(PhotoReaction.reaction_type)
        .where(PhotoReaction.photo_id == Photo.id, PhotoReaction.user_id == ctx.user_id)
        .scalar_subquery()
    )

    stmt = (
        filtered(select(Photo, reaction_count, comment_count, my_reaction))
        .order_by(Photo.photo_date.desc(), Photo.created_at.desc(), Photo.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )

    rows = [
        _with_uploader(
            photo,
            reaction_count=reactions,
            comment_count=comments,
            my_reaction=mine,
        )
        for photo, reactions, comments, mine in db.execute(stmt).all()
    ]
    return rows, total or 0


def get_photo(db: Session, ctx: AuthContext, photo_id: int) -> dict[str, Any]:
    """A single photo with its reactions and comments."""
    visibility = resolve_visibility(db, ctx.user_id)
    photo = PHOTOS.get_readable(db, photo_id, visibility)

    return _with_uploader(
        photo,
        anniversary_title=photo.anniversary.title if photo.anniversary else None,
        reactions=[_with_author(r) for r in photo.reactions],
        comments=[_with_author(c) for c in photo.comments],
    )


def list_favorites(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    visibility = resolve_visibility(db, ctx.user_id)
    stmt = PHOTOS.scope(select(Photo), visibility).where(Photo.is_favorite.is_(True))
    stmt = stmt.order_by(Photo.photo_date.desc(), Photo.id.desc())
    return [_with_uploader(p) for p in db.execute(stmt).scalars()]


def photos_by_month(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    """Photo counts per calendar month, most recent month first."""
    visibility = resolve_visibility(db, ctx.user_id)
    stmt = PHOTOS.scope(select(Photo.photo_date), visibility).where(Photo.photo_date.is_not(None))

    counts = Counter((d.year, d.month) for d in db.execute(stmt).scalars())
    return [
        {
            "month_year": f"{year:04d}-{month:02d}",
            "month_label": f"{calendar.month_name[month]} {year}",
            "count": count,
        }
        for (year, month), count in sorted(counts.items(), reverse=True)
    ]


def photos_by_anniversary(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    """Every anniversary with the number of visible photos filed under it."""
    visibility = resolve_visibility(db, ctx.user_id)

    photo_rows = db.execute(
        PHOTOS.scope(select(Photo.anniversary_id, Photo.file_path), visibility)
        .where(Photo.anniversary_id.is_not(None))
        .order_by(Photo.id)
    ).all()

    counts: Counter[int] = Counter()
    covers: dict[int, str] = {}
    for anniversary_id, file_path in photo_rows:
        counts[anniversary_id] += 1
        covers.setdefault(anniversary_id, file_path)

    anniversaries = db.execute(
        select(Anniversary).order_by(Anniversary.anniversary_date.desc())
    ).scalars()
    return [
        {
            "id": a.id,
            "title": a.title,
            "anniversary_date": a.anniversary_date,
            "year_number": a.year_number,
            "photo_count": counts[a.id],
            "cover_photo": covers.get(a.id),
        }
        for a in anniversaries
    ]


def photo_timeline(db: Session, ctx: AuthContext) -> list[dict[str, Any]]:
    """Per-year photo counts with the first and last photo date."""
    visibility = resolve_visibility(db, ctx.user_id)
    year = extract("year", Photo.photo_date)
    stmt = (
        PHOTOS.scope(
            select(
                year.label("year"),
                func.count(Photo.id),
                func.min(Photo.photo_date),
                func.max(Photo.photo_date),
            ),
            visibility,
        )
        .where(Photo.photo_date.is_not(None))
        .group_by(year)
        .order_by(year.desc())
    )
    return [
        {"year": int(y), "count": count, "first_photo": first, "last_photo": last}
        for y, count, first, last in db.execute(stmt).all()
    ]


def photo_stats(db: Session, ctx: AuthContext) -> dict[str, int]:
    visibility = resolve_visibility(db, ctx.user_id)

    def count(stmt: Select) -> int:
        return db.scalar(stmt) or 0

    return {
        "total_photos": count(PHOTOS.scope(select(func.count(Photo.id)), visibility)),
        "favorites": count(
            PHOTOS.scope(select(func.count(Photo.id)), visibility).where(Photo.is_favorite.is_(True))
        ),
        "memories": count(select(func.count(Memory.id)).where(Memory.user_id.in_(visibility))),
        "messages": count(
            select(func.count(Message.id)).where(
                Message.sender_id.in_(visibility) | Message.receiver_id.in_(visibility)
            )
        ),
    }


# =============================================================================
# Upload
# =============================================================================


def _parse_upload_form(form: dict[str, Any]) -> dict[str, Any]:
    """Coerce the text fields that accompany a multipart upload."""
    raw_date = form.get("photo_date")
    try:
        photo_date = date.fromisoformat(raw_date) if raw_date else date.today()
    except (TypeError, ValueError):
        raise ValidationError("Invalid photo_date")

    raw_anniversary = form.get("anniversary_id")
    try:
        anniversary_id = int(raw_anniversary) if raw_anniversary else None
    except (TypeError, ValueError):
        raise ValidationError("Invalid anniversary_id")

    raw_tags = form.get("tags")
    tags = [t.strip() for t in str(raw_tags).split(",") if t.strip()] if raw_tags else None

    return {
        "caption": form.get("caption") or None,
        "location": form.get("location") or None,
        "photo_date": photo_date,
        "anniversary_id": anniversary_id,
        "tags": tags,
    }


def upload_photo(
    db: Session,
    ctx: AuthContext,
    media: MediaStore,
    upload: Upload | None,
    form: dict[str, Any],
) -> dict[str, Any]:
    if upload is None:
        raise ValidationError("No photo uploaded")

    fields = _parse_upload_form(form)
    _ensure_anniversary(db, fields["anniversary_id"])

    stored = media.save_upload(upload, "photos")
    photo = Photo(user_id=ctx.user_id, **stored.model_dump(), **fields)
    db.add(photo)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        media.delete(stored.file_path)
        raise

    logger.info(f"User {ctx.user_id} uploaded photo {photo.id} ({stored.media_type})")
    log_activity(db, ctx.user_id, PHOTO_UPLOAD, photo.id, "Uploaded a new memory")
    return photo.to_dict()


# =============================================================================
# Reactions & Comments
# =============================================================================


def add_reaction(db: Session, ctx: AuthContext, data: ReactionRequest) -> None:
    """One reaction per user per photo; reacting again replaces it."""
    if not data.photo_id or not data.reaction_type:
        raise ValidationError("Photo ID and reaction type required")

    visibility = resolve_visibility(db, ctx.user_id)
    PHOTOS.get_readable(db, data.photo_id, visibility)

    reaction = db.execute(
        select(PhotoReaction).where(
            PhotoReaction.photo_id == data.photo_id,
            PhotoReaction.user_id == ctx.user_id,
        )
    ).scalar_one_or_none()

    if reaction is None:
        db.add(PhotoReaction(photo_id=data.photo_id, user_id=ctx.user_id, reaction_type=data.reaction_type))
    else:
        reaction.reaction_type = data.reaction_type
    db.commit()


def add_comment(db: Session, ctx: AuthContext, data: CommentRequest) -> dict[str, Any]:
    if not data.photo_id or not data.content:
        raise ValidationError("Photo ID and content required")

    visibility = resolve_visibility(db, ctx.user_id)
    PHOTOS.get_readable(db, data.photo_id, visibility)

    comment = PhotoComment(photo_id=data.photo_id, user_id=ctx.user_id, content=data.content)
    db.add(comment)
    db.commit()
    return _with_author(comment)


# =============================================================================
# Edits
# =============================================================================


def update_photo(db: Session, ctx: AuthContext, photo_id: int, data: PhotoUpdate) -> dict[str, Any]:
    photo = PHOTOS.get_writable(db, photo_id, ctx)

    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")
    if "anniversary_id" in changes:
        _ensure_anniversary(db, changes["anniversary_id"])

    for field, value in changes.items():
        setattr(photo, field, value)
    db.commit()
    return photo.to_dict()


def toggle_favorite(db: Session, ctx: AuthContext, photo_id: int) -> bool:
    """Flip the favorite flag. Returns the new state."""
    visibility = resolve_visibility(db, ctx.user_id)
    photo = PHOTOS.get_readable(db, photo_id, visibility)
    photo.is_favorite = not photo.is_favorite
    db.commit()
    return photo.is_favorite


def delete_photo(db: Session, ctx: AuthContext, media: MediaStore, photo_id: int) -> None:
    """Delete the row, then the stored file and thumbnail."""
    photo = PHOTOS.get_writable(db, photo_id, ctx)
    file_path = photo.file_path

    db.delete(photo)
    db.commit()

    media.delete(file_path)
    logger.info(f"User {ctx.user_id} deleted photo {photo_id}")
