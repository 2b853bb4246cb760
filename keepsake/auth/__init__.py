"""
Authentication and authorization.

Design principles:
1. One dependency for identity: `Depends(require_auth())`
2. Visibility is resolved live from the partner link, never cached
3. Per-resource policy objects decide read and write access
"""

from keepsake.auth.authorizers import (
    ANNIVERSARIES,
    COUNTDOWNS,
    LOVE_NOTES,
    MEMORIES,
    MESSAGES,
    MILESTONES,
    PHOTOS,
)
from keepsake.auth.context import AuthContext
from keepsake.auth.passwords import hash_password, verify_password
from keepsake.auth.policies import require_auth
from keepsake.auth.tokens import TokenClaims, TokenCodec
from keepsake.auth.visibility import resolve_partner_id, resolve_visibility

__all__ = [
    # Main interface
    "require_auth",
    "AuthContext",
    # Tokens
    "TokenCodec",
    "TokenClaims",
    # Passwords
    "hash_password",
    "verify_password",
    # Visibility
    "resolve_partner_id",
    "resolve_visibility",
    # Policies
    "PHOTOS",
    "MEMORIES",
    "MILESTONES",
    "COUNTDOWNS",
    "ANNIVERSARIES",
    "MESSAGES",
    "LOVE_NOTES",
]
