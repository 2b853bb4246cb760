"""
Resource authorizers.

Each resource type gets one policy object answering two orthogonal
questions:

    read:  may the caller see this row / which rows may they list?
    write: may the caller change or delete this row?

Failure semantics are uniform. A row that doesn't exist is NotFound. A row
that exists but is outside the caller's write scope is Forbidden, which
confirms existence to the caller; that leak is accepted for this system.
Rows outside the read scope are reported as NotFound.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import InstrumentedAttribute, Session

from keepsake.auth.context import AuthContext
from keepsake.core.errors import AuthorizationError, NotFoundError
from keepsake.db.models import (
    Anniversary,
    Countdown,
    LoveNote,
    Memory,
    Message,
    Milestone,
    Photo,
)


# =============================================================================
# Owner-scoped resources (photos, memories, milestones, countdowns)
# =============================================================================


class OwnedResourcePolicy:
    """
    Read scope: the owner is in the caller's visibility set.
    Write scope: the owner is the caller.

    A partner can see everything the caller shares but never edit or delete
    it.
    """

    def __init__(self, label: str, owner_column: InstrumentedAttribute):
        self.label = label
        self.owner_column = owner_column
        self.model = owner_column.class_

    def owner_of(self, row: Any) -> int:
        return getattr(row, self.owner_column.key)

    def scope(self, stmt: Select, visibility: frozenset[int]) -> Select:
        """Restrict a SELECT to rows the visibility set may read."""
        return stmt.where(self.owner_column.in_(visibility))

    def can_read(self, row: Any, visibility: frozenset[int]) -> bool:
        return self.owner_of(row) in visibility

    def can_write(self, ctx: AuthContext, row: Any) -> bool:
        return ctx.is_self(self.owner_of(row))

    def get_readable(self, db: Session, row_id: int, visibility: frozenset[int]) -> Any:
        row = db.get(self.model, row_id)
        if row is None or not self.can_read(row, visibility):
            raise NotFoundError(f"{self.label} not found")
        return row

    def get_writable(self, db: Session, row_id: int, ctx: AuthContext) -> Any:
        row = db.get(self.model, row_id)
        if row is None:
            raise NotFoundError(f"{self.label} not found")
        if not self.can_write(ctx, row):
            raise AuthorizationError(f"{self.label} not found or unauthorized")
        return row


# =============================================================================
# Globally readable resources (anniversaries)
# =============================================================================


class OpenResourcePolicy:
    """
    Any authenticated caller may read, update and delete.

    This is how anniversaries have always behaved. It is inconsistent with
    every other resource; see DESIGN.md before relying on it.
    """

    def __init__(self, label: str, model: type):
        self.label = label
        self.model = model

    def get_readable(self, db: Session, row_id: int) -> Any:
        row = db.get(self.model, row_id)
        if row is None:
            raise NotFoundError(f"{self.label} not found")
        return row

    get_writable = get_readable


# =============================================================================
# Messages (pairwise)
# =============================================================================


class MessagePolicy:
    """
    A message belongs to exactly two people. Each side hides its own copy
    independently; the row survives until both have (and beyond).
    """

    label = "Message"

    def conversation_scope(self, stmt: Select, user_id: int, partner_id: int) -> Select:
        """Messages between the two, minus the ones the caller deleted."""
        return stmt.where(
            or_(
                and_(
                    Message.sender_id == user_id,
                    Message.receiver_id == partner_id,
                    Message.is_deleted_by_sender.is_(False),
                ),
                and_(
                    Message.sender_id == partner_id,
                    Message.receiver_id == user_id,
                    Message.is_deleted_by_receiver.is_(False),
                ),
            )
        )

    def deletion_flag(self, ctx: AuthContext, message: Message) -> str:
        """Which soft-delete column the caller is allowed to set."""
        if ctx.is_self(message.sender_id):
            return "is_deleted_by_sender"
        if ctx.is_self(message.receiver_id):
            return "is_deleted_by_receiver"
        raise AuthorizationError("Unauthorized")

    def get_participant_message(self, db: Session, message_id: int) -> Message:
        message = db.get(Message, message_id)
        if message is None:
            raise NotFoundError("Message not found")
        return message


# =============================================================================
# Love notes (pairwise, time-gated)
# =============================================================================


class LoveNotePolicy:
    """
    Scheduled -> Delivered -> Opened.

    Delivery isn't a stored transition: a note is delivered once
    `deliver_at <= now`, checked at read time. The sender always sees what
    they sent; the recipient sees nothing until delivery. Only the recipient
    may open a note, and opening is permanent.
    """

    label = "Love note"

    def is_delivered(self, note: LoveNote, now: datetime) -> bool:
        return note.deliver_at <= now

    def received_scope(self, stmt: Select, user_id: int, now: datetime) -> Select:
        return stmt.where(LoveNote.to_user_id == user_id, LoveNote.deliver_at <= now)

    def sent_scope(self, stmt: Select, user_id: int) -> Select:
        return stmt.where(LoveNote.from_user_id == user_id)

    def can_read(self, ctx: AuthContext, note: LoveNote, now: datetime) -> bool:
        if ctx.is_self(note.from_user_id):
            return True
        return ctx.is_self(note.to_user_id) and self.is_delivered(note, now)

    def get_readable(self, db: Session, note_id: int, ctx: AuthContext, now: datetime) -> LoveNote:
        note = db.get(LoveNote, note_id)
        if note is None or not self.can_read(ctx, note, now):
            raise NotFoundError(f"{self.label} not found")
        return note

    def get_openable(self, db: Session, note_id: int, ctx: AuthContext, now: datetime) -> LoveNote:
        note = self.get_readable(db, note_id, ctx, now)
        if not ctx.is_self(note.to_user_id):
            raise AuthorizationError("Only the recipient can open a love note")
        return note


# =============================================================================
# Policy instances
# =============================================================================


PHOTOS = OwnedResourcePolicy("Photo", Photo.user_id)
MEMORIES = OwnedResourcePolicy("Memory", Memory.user_id)
MILESTONES = OwnedResourcePolicy("Milestone", Milestone.created_by)
COUNTDOWNS = OwnedResourcePolicy("Countdown", Countdown.created_by)
ANNIVERSARIES = OpenResourcePolicy("Anniversary", Anniversary)
MESSAGES = MessagePolicy()
LOVE_NOTES = LoveNotePolicy()
