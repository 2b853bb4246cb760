# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints (action-dispatched):
#   POST /api/auth?action=login          - Username-or-email login
#   POST /api/auth?action=register       - Create account
#   POST /api/auth?action=logout         - Stateless; client drops the token
#   POST /api/auth?action=upload-avatar  - Multipart `avatar` (token required)
#   GET  /api/auth?action=me             - Current user
#   GET  /api/auth?action=partner        - Linked partner, if any
#   PUT  /api/auth?action=profile        - display_name / email / avatar
#   PUT  /api/auth?action=password       - Change password
#   PUT  /api/auth?action=link-partner   - Link with another account
#
# =============================================================================

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from keepsake.api.deps import get_media, parse_payload, request_payload, uploaded_file
from keepsake.auth.context import AuthContext
from keepsake.auth.policies import authenticate, get_token_codec, require_auth
from keepsake.auth.tokens import TokenCodec
from keepsake.core import responses
from keepsake.core.errors import ValidationError
from keepsake.db.database import get_db
from keepsake.integrations.captcha import RecaptchaVerifier, get_captcha_verifier
from keepsake.schemas import (
    LinkPartnerRequest,
    LoginRequest,
    PasswordUpdate,
    ProfileUpdate,
    RegisterRequest,
)
from keepsake.services import users
from keepsake.storage.media import MediaStore

router = APIRouter(prefix="/auth", tags=["auth"])


def avatar_uploader(
    request: Request,
    action: str = "",
    codec: TokenCodec = Depends(get_token_codec),
) -> AuthContext | None:
    """The caller of upload-avatar, checked before the upload is read."""
    if action != "upload-avatar":
        return None
    return authenticate(request, codec)


@router.post("")
def auth_post(
    action: str = "",
    codec: TokenCodec = Depends(get_token_codec),
    uploader: AuthContext | None = Depends(avatar_uploader),
    payload: dict[str, Any] = Depends(request_payload),
    captcha: RecaptchaVerifier = Depends(get_captcha_verifier),
    media: MediaStore = Depends(get_media),
    db: Session = Depends(get_db),
):
    """Login, register and logout are public; upload-avatar is not."""
    if uploader is not None:
        user = users.set_avatar(db, uploader, media, uploaded_file(payload, "avatar"))
        return responses.success(user, "Avatar updated successfully! ✨")

    if action == "register":
        result = users.register(db, codec, captcha, parse_payload(RegisterRequest, payload))
        return responses.success(result, "Registration successful", 201)

    if action == "logout":
        return responses.success(None, "Logged out successfully")

    if action == "login":
        result = users.login(db, codec, captcha, parse_payload(LoginRequest, payload))
        return responses.success(result, "Login successful")

    raise ValidationError("Invalid action")


@router.get("")
def auth_get(
    action: str = "",
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "me":
        return responses.success(users.get_me(db, ctx))

    if action == "partner":
        partner = users.get_partner(db, ctx)
        if partner is None:
            return responses.success(None, "No partner linked")
        return responses.success(partner)

    raise ValidationError("Invalid action")


@router.put("")
def auth_put(
    action: str = "",
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    db: Session = Depends(get_db),
):
    if action == "profile":
        user = users.update_profile(db, ctx, parse_payload(ProfileUpdate, payload))
        return responses.success(user, "Profile updated")

    if action == "password":
        users.update_password(db, ctx, parse_payload(PasswordUpdate, payload))
        return responses.success(None, "Password updated")

    if action == "link-partner":
        data = parse_payload(LinkPartnerRequest, payload)
        partner = users.link_partner(db, ctx, data.partner_username)
        return responses.success(partner, "Partner linked successfully! 💚")

    raise ValidationError("Invalid action")
