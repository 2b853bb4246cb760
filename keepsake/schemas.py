"""
Request payloads.

The `*Update` models double as the per-resource allow-list of mutable
fields: a field that isn't declared here can't be changed through the API,
and each declared field carries its type.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# =============================================================================
# Auth
# =============================================================================


class LoginRequest(BaseModel):
    username: str = ""  # username or email
    password: str = ""
    recaptcha_token: str = ""


class RegisterRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""
    display_name: str = ""
    recaptcha_token: str = ""


class ProfileUpdate(BaseModel):
    display_name: str | None = None
    email: str | None = None
    avatar: str | None = None


class PasswordUpdate(BaseModel):
    current_password: str = ""
    new_password: str = ""


class LinkPartnerRequest(BaseModel):
    partner_username: str = ""


# =============================================================================
# Photos
# =============================================================================


class PhotoUpdate(BaseModel):
    caption: str | None = None
    location: str | None = None
    photo_date: date | None = None
    anniversary_id: int | None = None
    tags: list[str] | None = None


class ReactionRequest(BaseModel):
    photo_id: int | None = None
    reaction_type: str = ""


class CommentRequest(BaseModel):
    photo_id: int | None = None
    content: str = ""


# =============================================================================
# Memories & Milestones
# =============================================================================


class MemoryCreate(BaseModel):
    title: str = ""
    memory_date: date | None = None
    description: str | None = None
    mood: str = "happy"
    is_milestone: bool = False
    photo_ids: list[int] = Field(default_factory=list)


class MemoryUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    memory_date: date | None = None
    mood: str | None = None
    is_milestone: bool | None = None
    # Not a column: replaces the linked photos when present
    photo_ids: list[int] | None = None


class MilestoneCreate(BaseModel):
    title: str = ""
    milestone_date: date | None = None
    description: str | None = None
    icon: str = "💚"
    category: str = "other"


# =============================================================================
# Messages & Love Notes
# =============================================================================


class MessageCreate(BaseModel):
    content: str = ""
    message_type: str | None = None
    attachment_path: str | None = None


class LoveNoteCreate(BaseModel):
    content: str = ""
    note_type: str = "random"
    background_color: str = "#a7f3d0"
    deliver_at: datetime | None = None


# =============================================================================
# Anniversaries & Countdowns
# =============================================================================


class AnniversaryCreate(BaseModel):
    title: str = ""
    anniversary_date: date | None = None
    year_number: int | None = None
    description: str | None = None
    cover_photo: str | None = None


class AnniversaryUpdate(BaseModel):
    title: str | None = None
    anniversary_date: date | None = None
    description: str | None = None
    year_number: int | None = None
    cover_photo: str | None = None


class CountdownCreate(BaseModel):
    title: str = ""
    target_date: datetime | None = None
    description: str | None = None
    icon: str = "💚"
    is_recurring: bool = False
    recurrence_type: str | None = None
