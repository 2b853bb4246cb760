"""
Auth gate - the dependency every protected route hangs off.

Just use: `ctx: AuthContext = Depends(require_auth())`

Design:
- Reads `Authorization: Bearer <token>`, falling back to `X-Authorization`
  (some hosts strip the standard header before it reaches the app)
- Verifies the token with the codec on `app.state`
- Raises AuthError (401) on any failure, before the handler or its
  database session runs
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Mapping

from fastapi import Depends, Request

from keepsake.auth.context import AuthContext
from keepsake.auth.tokens import TokenCodec
from keepsake.core.errors import AuthError

logger = logging.getLogger(__name__)

AUTH_HEADERS = ("authorization", "x-authorization")
BEARER_PATTERN = re.compile(r"Bearer\s+(.*)$", re.IGNORECASE)


# =============================================================================
# Token Extraction
# =============================================================================


def extract_bearer_token(headers: Mapping[str, str]) -> str | None:
    """
    Pull the bearer token out of the request headers.

    The scheme match is case-insensitive ("bearer", "BEARER" are fine).
    """
    for header in AUTH_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        match = BEARER_PATTERN.search(value)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


# =============================================================================
# Dependencies
# =============================================================================


def authenticate(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
) -> AuthContext:
    """Resolve the caller from the request or reject it."""
    token = extract_bearer_token(request.headers)
    if token is None:
        logger.debug("No bearer token on %s %s", request.method, request.url.path)
        raise AuthError()

    claims = codec.verify(token)
    if claims is None:
        raise AuthError()

    return AuthContext.from_claims(claims)


def require_auth() -> Callable[..., AuthContext]:
    """
    Require an authenticated caller.

    Usage:
        @router.get("/photos")
        def list_photos(ctx: AuthContext = Depends(require_auth())):
            ...
    """
    return authenticate
