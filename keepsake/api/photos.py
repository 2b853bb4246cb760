# =============================================================================
# Photos API Routes
# =============================================================================
#
#   GET    /api/photos?action=list|single|favorites|by-date|by-anniversary|timeline|stats
#   POST   /api/photos?action=upload|reaction|comment
#   PUT    /api/photos?action=update|favorite&id=
#   DELETE /api/photos?id=
#
# GET falls back to `list` and POST to `upload` for an unknown action.
#
# =============================================================================

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from keepsake.api.deps import (
    get_media,
    page_window,
    parse_payload,
    request_payload,
    require_id,
    uploaded_file,
)
from keepsake.auth.context import AuthContext
from keepsake.auth.policies import require_auth
from keepsake.core import responses
from keepsake.core.errors import ValidationError
from keepsake.db.database import get_db
from keepsake.schemas import CommentRequest, PhotoUpdate, ReactionRequest
from keepsake.services import photos
from keepsake.storage.media import MediaStore

router = APIRouter(prefix="/photos", tags=["photos"])

MAX_PAGE_SIZE = 50


@router.get("")
def photos_get(
    action: str = "list",
    photo_id: int | None = Query(None, alias="id"),
    page: int = 1,
    limit: int = 20,
    anniversary_id: int | None = None,
    year: int | None = None,
    month: int | None = None,
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "single":
        return responses.success(photos.get_photo(db, ctx, require_id(photo_id, "Photo")))
    if action == "favorites":
        return responses.success(photos.list_favorites(db, ctx))
    if action == "by-date":
        return responses.success(photos.photos_by_month(db, ctx))
    if action == "by-anniversary":
        return responses.success(photos.photos_by_anniversary(db, ctx))
    if action == "timeline":
        return responses.success(photos.photo_timeline(db, ctx))
    if action == "stats":
        return responses.success(photos.photo_stats(db, ctx))

    page, limit = page_window(page, limit, MAX_PAGE_SIZE)
    rows, total = photos.list_photos(
        db,
        ctx,
        page=page,
        limit=limit,
        anniversary_id=anniversary_id,
        year=year,
        month=month,
    )
    return responses.paginate(rows, total, page, limit)


@router.post("")
def photos_post(
    action: str = "upload",
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    media: MediaStore = Depends(get_media),
    db: Session = Depends(get_db),
):
    if action == "reaction":
        photos.add_reaction(db, ctx, parse_payload(ReactionRequest, payload))
        return responses.success(None, "Reaction added 💚")

    if action == "comment":
        comment = photos.add_comment(db, ctx, parse_payload(CommentRequest, payload))
        return responses.success(comment, "Comment added", 201)

    photo = photos.upload_photo(db, ctx, media, uploaded_file(payload, "photo"), payload)
    return responses.success(photo, "Memory uploaded successfully! 📸", 201)


@router.put("")
def photos_put(
    action: str = "",
    photo_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    db: Session = Depends(get_db),
):
    if action == "update":
        photo_id = require_id(photo_id, "Photo")
        photo = photos.update_photo(db, ctx, photo_id, parse_payload(PhotoUpdate, payload))
        return responses.success(photo, "Photo updated")

    if action == "favorite":
        is_favorite = photos.toggle_favorite(db, ctx, require_id(photo_id, "Photo"))
        message = "Added to favorites 💚" if is_favorite else "Removed from favorites"
        return responses.success({"is_favorite": is_favorite}, message)

    raise ValidationError("Invalid action")


@router.delete("")
def photos_delete(
    photo_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    media: MediaStore = Depends(get_media),
    db: Session = Depends(get_db),
):
    photos.delete_photo(db, ctx, media, require_id(photo_id, "Photo"))
    return responses.success(None, "Photo deleted")
