"""
Messages and love notes between partners.

Both are pairwise: there is no visibility set here, only "sender" and
"receiver". A message is sent to whoever the caller is linked to at the
time of sending.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from keepsake.auth.authorizers import LOVE_NOTES, MESSAGES
from keepsake.auth.context import AuthContext
from keepsake.auth.visibility import resolve_partner_id
from keepsake.core.errors import ValidationError
from keepsake.core.utils import db_now, to_db_datetime
from keepsake.db.models import LoveNote, Message
from keepsake.schemas import LoveNoteCreate, MessageCreate
from keepsake.services.activity import LOVE_NOTE_SENT, MESSAGE_SENT, log_activity

logger = logging.getLogger(__name__)

HEART = "💚"


def _require_partner(db: Session, ctx: AuthContext) -> int:
    partner_id = resolve_partner_id(db, ctx.user_id)
    if partner_id is None:
        raise ValidationError("No partner linked yet")
    return partner_id


def _message_dict(message: Message) -> dict[str, Any]:
    data = message.to_dict()
    data["sender_name"] = message.sender.display_name
    data["sender_avatar"] = message.sender.avatar
    data["receiver_name"] = message.receiver.display_name
    return data


def _note_dict(note: LoveNote) -> dict[str, Any]:
    data = note.to_dict()
    data["from_name"] = note.sender.display_name
    data["from_avatar"] = note.sender.avatar
    data["to_name"] = note.recipient.display_name
    return data


# =============================================================================
# Messages
# =============================================================================


def conversation(
    db: Session,
    ctx: AuthContext,
    page: int = 1,
    limit: int = 50,
) -> list[dict[str, Any]] | None:
    """
    One page of the conversation with the partner, oldest first.

    Reading the conversation marks everything the partner sent as read.
    Returns None when the caller has no partner.
    """
    partner_id = resolve_partner_id(db, ctx.user_id)
    if partner_id is None:
        return None

    stmt = (
        MESSAGES.conversation_scope(select(Message), ctx.user_id, partner_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    messages = [_message_dict(m) for m in db.execute(stmt).scalars()]

    db.execute(
        update(Message)
        .where(
            Message.receiver_id == ctx.user_id,
            Message.sender_id == partner_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
    )
    db.commit()

    messages.reverse()
    return messages


def send_message(db: Session, ctx: AuthContext, data: MessageCreate) -> dict[str, Any]:
    if not data.content and not data.message_type:
        raise ValidationError("Message content is required")

    partner_id = _require_partner(db, ctx)
    message = Message(
        sender_id=ctx.user_id,
        receiver_id=partner_id,
        content=data.content,
        message_type=data.message_type or "text",
        attachment_path=data.attachment_path,
    )
    db.add(message)
    db.commit()

    log_activity(db, ctx.user_id, MESSAGE_SENT, message.id, "Sent a message")
    return _message_dict(message)


def send_heart(db: Session, ctx: AuthContext) -> None:
    partner_id = _require_partner(db, ctx)
    db.add(Message(sender_id=ctx.user_id, receiver_id=partner_id, content=HEART, message_type="heart"))
    db.commit()


def unread_counts(db: Session, ctx: AuthContext) -> dict[str, int]:
    """Unread messages plus delivered, unopened love notes."""
    messages = db.scalar(
        select(func.count(Message.id)).where(
            Message.receiver_id == ctx.user_id,
            Message.is_read.is_(False),
            Message.is_deleted_by_receiver.is_(False),
        )
    ) or 0
    love_notes = db.scalar(
        LOVE_NOTES.received_scope(select(func.count(LoveNote.id)), ctx.user_id, db_now())
        .where(LoveNote.is_opened.is_(False))
    ) or 0
    return {"messages": messages, "love_notes": love_notes, "total": messages + love_notes}


def mark_read(db: Session, ctx: AuthContext) -> bool:
    """Mark everything from the partner as read. False if unlinked."""
    partner_id = resolve_partner_id(db, ctx.user_id)
    if partner_id is None:
        return False

    db.execute(
        update(Message)
        .where(Message.receiver_id == ctx.user_id, Message.sender_id == partner_id)
        .values(is_read=True)
    )
    db.commit()
    return True


def delete_message(db: Session, ctx: AuthContext, message_id: int) -> None:
    """Hide the message from the caller's side only."""
    message = MESSAGES.get_participant_message(db, message_id)
    setattr(message, MESSAGES.deletion_flag(ctx, message), True)
    db.commit()


# =============================================================================
# Love Notes
# =============================================================================


def send_love_note(db: Session, ctx: AuthContext, data: LoveNoteCreate) -> dict[str, Any]:
    """Schedule a note for the partner. Without deliver_at it is delivered now."""
    if not data.content:
        raise ValidationError("Love note content is required")

    partner_id = _require_partner(db, ctx)
    note = LoveNote(
        from_user_id=ctx.user_id,
        to_user_id=partner_id,
        content=data.content,
        note_type=data.note_type or "random",
        background_color=data.background_color or "#a7f3d0",
        deliver_at=to_db_datetime(data.deliver_at) if data.deliver_at else db_now(),
    )
    db.add(note)
    db.commit()

    logger.info(f"User {ctx.user_id} scheduled love note {note.id} for {note.deliver_at}")
    log_activity(db, ctx.user_id, LOVE_NOTE_SENT, note.id, "Sent a love note")
    return {"id": note.id}


def list_love_notes(db: Session, ctx: AuthContext) -> dict[str, list[dict[str, Any]]]:
    """Delivered notes received, and every note sent."""
    now = db_now()
    received = db.execute(
        LOVE_NOTES.received_scope(select(LoveNote), ctx.user_id, now)
        .order_by(LoveNote.created_at.desc(), LoveNote.id.desc())
    ).scalars()
    sent = db.execute(
        LOVE_NOTES.sent_scope(select(LoveNote), ctx.user_id)
        .order_by(LoveNote.created_at.desc(), LoveNote.id.desc())
    ).scalars()
    return {
        "received": [_note_dict(n) for n in received],
        "sent": [_note_dict(n) for n in sent],
    }


def get_love_note(db: Session, ctx: AuthContext, note_id: int) -> dict[str, Any]:
    return _note_dict(LOVE_NOTES.get_readable(db, note_id, ctx, db_now()))


def open_love_note(db: Session, ctx: AuthContext, note_id: int) -> dict[str, Any]:
    note = LOVE_NOTES.get_openable(db, note_id, ctx, db_now())
    if not note.is_opened:
        note.is_opened = True
        db.commit()
    return _note_dict(note)
