# =============================================================================
# Messages API Routes
# =============================================================================
#
#   GET    /api/messages?action=conversation|unread|love-notes|love-note
#   POST   /api/messages?action=send|love-note|heart
#   PUT    /api/messages?action=read|open-note
#   DELETE /api/messages?id=
#
# =============================================================================

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from keepsake.api.deps import page_window, parse_payload, request_payload, require_id
from keepsake.auth.context import AuthContext
from keepsake.auth.policies import require_auth
from keepsake.core import responses
from keepsake.core.errors import ValidationError
from keepsake.db.database import get_db
from keepsake.schemas import LoveNoteCreate, MessageCreate
from keepsake.services import messages

router = APIRouter(prefix="/messages", tags=["messages"])

MAX_PAGE_SIZE = 100


@router.get("")
def messages_get(
    action: str = "conversation",
    note_id: int | None = Query(None, alias="id"),
    page: int = 1,
    limit: int = 50,
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "unread":
        return responses.success(messages.unread_counts(db, ctx))
    if action == "love-notes":
        return responses.success(messages.list_love_notes(db, ctx))
    if action == "love-note":
        return responses.success(messages.get_love_note(db, ctx, require_id(note_id, "Love note")))

    page, limit = page_window(page, limit, MAX_PAGE_SIZE)
    conversation = messages.conversation(db, ctx, page=page, limit=limit)
    if conversation is None:
        return responses.success([], "No partner linked yet")
    return responses.success(conversation)


@router.post("")
def messages_post(
    action: str = "send",
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    db: Session = Depends(get_db),
):
    if action == "love-note":
        note = messages.send_love_note(db, ctx, parse_payload(LoveNoteCreate, payload))
        return responses.success(note, "Love note created! 💌", 201)

    if action == "heart":
        messages.send_heart(db, ctx)
        return responses.success(None, "Heart sent! 💚")

    message = messages.send_message(db, ctx, parse_payload(MessageCreate, payload))
    return responses.success(message, "Message sent 💌", 201)


@router.put("")
def messages_put(
    action: str = "",
    note_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "read":
        if not messages.mark_read(db, ctx):
            return responses.success(None)
        return responses.success(None, "Messages marked as read")

    if action == "open-note":
        note = messages.open_love_note(db, ctx, require_id(note_id, "Love note"))
        return responses.success(note, "Love note opened! 💚")

    raise ValidationError("Invalid action")


@router.delete("")
def messages_delete(
    message_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    messages.delete_message(db, ctx, require_id(message_id, "Message"))
    return responses.success(None, "Message deleted")
