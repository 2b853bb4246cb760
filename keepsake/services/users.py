"""
Accounts: registration, login, profile, and the partner link.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from keepsake.auth.context import AuthContext
from keepsake.auth.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from keepsake.auth.tokens import TokenCodec
from keepsake.core.errors import AuthError, AuthorizationError, NotFoundError, ValidationError
from keepsake.db.models import User
from keepsake.integrations.captcha import RecaptchaVerifier
from keepsake.schemas import LoginRequest, PasswordUpdate, ProfileUpdate, RegisterRequest
from keepsake.storage.media import MediaStore, Upload

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _partner_summary(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "avatar": user.avatar,
    }


# =============================================================================
# Registration & Login
# =============================================================================


def register(
    db: Session,
    codec: TokenCodec,
    captcha: RecaptchaVerifier,
    data: RegisterRequest,
) -> dict[str, Any]:
    """Create an account and log it in."""
    for field in ("username", "email", "password", "display_name"):
        if not getattr(data, field):
            raise ValidationError(f"{field} is required")

    if not captcha.verify(data.recaptcha_token):
        raise AuthorizationError("Recaptcha verification failed")

    taken = db.execute(
        select(User.id).where(or_(User.username == data.username, User.email == data.email))
    ).first()
    if taken:
        raise ValidationError("Username or email already exists")

    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        display_name=data.display_name,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        db.rollback()
        raise ValidationError("Username or email already exists")

    logger.info(f"Registered user {user.id} ({user.username})")
    return {
        "user": {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "display_name": user.display_name,
        },
        "token": codec.issue(user.id, user.username),
    }


def login(
    db: Session,
    codec: TokenCodec,
    captcha: RecaptchaVerifier,
    data: LoginRequest,
) -> dict[str, Any]:
    """Username-or-email login. Returns the user, their partner and a token."""
    if not data.username or not data.password:
        raise ValidationError("Username and password are required")

    if not captcha.verify(data.recaptcha_token):
        raise AuthorizationError("Recaptcha verification failed")

    user = db.execute(
        select(User).where(or_(User.username == data.username, User.email == data.username))
    ).scalars().first()

    if user is None or not verify_password(data.password, user.password_hash):
        raise AuthError("Invalid credentials")

    partner = db.get(User, user.partner_id) if user.partner_id else None

    user_data = user.to_dict()
    user_data.pop("created_at", None)
    return {
        "user": user_data,
        "partner": _partner_summary(partner) if partner else None,
        "token": codec.issue(user.id, user.username),
    }


# =============================================================================
# Profile
# =============================================================================


def get_me(db: Session, ctx: AuthContext) -> dict[str, Any]:
    return get_user(db, ctx.user_id).to_dict()


def get_partner(db: Session, ctx: AuthContext) -> dict[str, Any] | None:
    user = get_user(db, ctx.user_id)
    if not user.partner_id:
        return None
    partner = db.get(User, user.partner_id)
    return partner.public_profile() if partner else None


def update_profile(db: Session, ctx: AuthContext, data: ProfileUpdate) -> dict[str, Any]:
    user = get_user(db, ctx.user_id)
    changes = {k: v for k, v in data.model_dump(exclude_none=True).items() if v}
    if not changes:
        raise ValidationError("No fields to update")

    if "email" in changes:
        in_use = db.execute(
            select(User.id).where(User.email == changes["email"], User.id != ctx.user_id)
        ).first()
        if in_use:
            raise ValidationError("Email already in use")

    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    return user.to_dict()


def update_password(db: Session, ctx: AuthContext, data: PasswordUpdate) -> None:
    if not data.current_password or not data.new_password:
        raise ValidationError("Current password and new password are required")

    user = get_user(db, ctx.user_id)
    if not verify_password(data.current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    if len(data.new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")

    user.password_hash = hash_password(data.new_password)
    db.commit()


def set_avatar(db: Session, ctx: AuthContext, media: MediaStore, upload: Upload | None) -> dict[str, Any]:
    user = get_user(db, ctx.user_id)
    stored = media.save_upload(upload, "avatars", images_only=True)
    user.avatar = stored.file_path
    db.commit()
    return user.to_dict()


# =============================================================================
# Partner Link
# =============================================================================


def _claim_partner_slot(db: Session, user_id: int, partner_id: int) -> bool:
    """Point `user_id` at `partner_id` unless it already points elsewhere."""
    result = db.execute(
        update(User)
        .where(User.id == user_id, or_(User.partner_id.is_(None), User.partner_id == partner_id))
        .values(partner_id=partner_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def link_partner(db: Session, ctx: AuthContext, partner_username: str) -> dict[str, Any]:
    """
    Link the caller and `partner_username` as partners.

    Both rows are written in one transaction. Linking someone who is
    already linked elsewhere is refused, otherwise their old partner would
    be left pointing at a user who no longer points back. The writes are
    conditional on the stored link, so a concurrent link to either user
    makes one of the two requests fail instead of both committing.
    """
    if not partner_username:
        raise ValidationError("Partner username is required")

    partner = db.execute(select(User).where(User.username == partner_username)).scalars().first()
    if partner is None:
        raise ValidationError("Partner not found")

    if partner.id == ctx.user_id:
        raise ValidationError("You cannot link yourself as a partner")

    user = get_user(db, ctx.user_id)
    if user.partner_id not in (None, partner.id) or partner.partner_id not in (None, user.id):
        raise ValidationError("One of you is already linked to another partner")

    try:
        linked = _claim_partner_slot(db, user.id, partner.id) and _claim_partner_slot(db, partner.id, user.id)
        if not linked:
            db.rollback()
            logger.info(f"Link of users {user.id} and {partner.id} lost a race with another link")
            raise ValidationError("One of you is already linked to another partner")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Linked users {user.id} and {partner.id} as partners")
    return {
        "id": partner.id,
        "username": partner.username,
        "display_name": partner.display_name,
    }
