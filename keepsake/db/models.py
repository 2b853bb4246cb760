"""
Relational data model.

Ownership columns are what the authorizers key on:
- photos.user_id, memories.user_id        (owner)
- milestones/anniversaries/countdowns.created_by
- messages.sender_id / receiver_id        (pairwise)
- love_notes.from_user_id / to_user_id    (pairwise, time-gated)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from keepsake.core.utils import db_now
from keepsake.db.database import Base


class SerializableMixin:
    """Column-level dict export, the equivalent of `SELECT t.*`."""

    _hidden_columns: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
            if column.name not in self._hidden_columns
        }


# =============================================================================
# Users
# =============================================================================


class User(SerializableMixin, Base):
    __tablename__ = "users"
    _hidden_columns = ("password_hash",)

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(100), nullable=False)
    avatar = Column(String(500), nullable=True)

    # Symmetric: if A.partner_id == B.id then B.partner_id == A.id
    partner_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=db_now, nullable=False)

    def public_profile(self) -> dict[str, Any]:
        """Fields a partner gets to see."""
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "avatar": self.avatar,
            "created_at": self.created_at,
        }


# =============================================================================
# Photos
# =============================================================================


memory_photos = Table(
    "memory_photos",
    Base.metadata,
    Column("memory_id", Integer, ForeignKey("memories.id", ondelete="CASCADE"), primary_key=True),
    Column("photo_id", Integer, ForeignKey("photos.id", ondelete="CASCADE"), primary_key=True),
)


class Photo(SerializableMixin, Base):
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    anniversary_id = Column(Integer, ForeignKey("anniversaries.id", ondelete="SET NULL"), nullable=True)

    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=True)
    file_path = Column(String(500), nullable=False)
    thumbnail_path = Column(String(500), nullable=True)
    media_type = Column(String(10), default="image", nullable=False)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    file_size = Column(Integer, nullable=True)

    caption = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    photo_date = Column(Date, nullable=True)
    tags = Column(JSON, nullable=True)
    is_favorite = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=db_now, nullable=False)

    owner = relationship("User")
    anniversary = relationship("Anniversary", back_populates="photos")
    reactions = relationship("PhotoReaction", back_populates="photo", cascade="all, delete-orphan")
    comments = relationship(
        "PhotoComment",
        back_populates="photo",
        cascade="all, delete-orphan",
        order_by="PhotoComment.created_at",
    )
    memories = relationship("Memory", secondary=memory_photos, back_populates="photos")


class PhotoReaction(SerializableMixin, Base):
    __tablename__ = "photo_reactions"
    __table_args__ = (UniqueConstraint("photo_id", "user_id", name="uq_reaction_per_user"),)

    id = Column(Integer, primary_key=True)
    photo_id = Column(Integer, ForeignKey("photos.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reaction_type = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=db_now, nullable=False)

    photo = relationship("Photo", back_populates="reactions")
    user = relationship("User")


class PhotoComment(SerializableMixin, Base):
    __tablename__ = "photo_comments"

    id = Column(Integer, primary_key=True)
    photo_id = Column(Integer, ForeignKey("photos.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=db_now, nullable=False)

    photo = relationship("Photo", back_populates="comments")
    user = relationship("User")


# =============================================================================
# Memories & Milestones
# =============================================================================


class Memory(SerializableMixin, Base):
    __tablename__ = "memories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    memory_date = Column(Date, nullable=False)
    mood = Column(String(30), default="happy", nullable=False)
    is_milestone = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=db_now, nullable=False)

    creator = relationship("User")
    photos = relationship("Photo", secondary=memory_photos, back_populates="memories")


class Milestone(SerializableMixin, Base):
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    milestone_date = Column(Date, nullable=False)
    icon = Column(String(20), default="💚", nullable=False)
    category = Column(String(30), default="other", nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=db_now, nullable=False)


# =============================================================================
# Messages & Love Notes
# =============================================================================


class Message(SerializableMixin, Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    message_type = Column(String(20), default="text", nullable=False)
    attachment_path = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    is_deleted_by_sender = Column(Boolean, default=False, nullable=False)
    is_deleted_by_receiver = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=db_now, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


class LoveNote(SerializableMixin, Base):
    __tablename__ = "love_notes"

    id = Column(Integer, primary_key=True, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    note_type = Column(String(30), default="random", nullable=False)
    background_color = Column(String(20), default="#a7f3d0", nullable=False)

    # Recipient can't see the note before this moment
    deliver_at = Column(DateTime, default=db_now, nullable=False, index=True)
    is_opened = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=db_now, nullable=False)

    sender = relationship("User", foreign_keys=[from_user_id])
    recipient = relationship("User", foreign_keys=[to_user_id])


# =============================================================================
# Anniversaries & Countdowns
# =============================================================================


class Anniversary(SerializableMixin, Base):
    __tablename__ = "anniversaries"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    anniversary_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    year_number = Column(Integer, nullable=False)
    cover_photo = Column(String(500), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=db_now, nullable=False)

    creator = relationship("User")
    photos = relationship("Photo", back_populates="anniversary")


class Countdown(SerializableMixin, Base):
    __tablename__ = "countdowns"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    target_date = Column(DateTime, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(20), default="💚", nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_type = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=db_now, nullable=False)

    creator = relationship("User")


# =============================================================================
# Activity Log
# =============================================================================


class ActivityLog(SerializableMixin, Base):
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_type = Column(String(40), nullable=False)
    reference_id = Column(Integer, nullable=True)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=db_now, nullable=False)
