# =============================================================================
# Identity Tokens
# =============================================================================
#
# Stateless, signed, time-limited identity claims:
#   header.payload.signature   (URL-safe base64, HS256)
#   payload = {user_id, username, iat, exp}
#
# There is no server-side session or revocation list. Logging out means the
# client drops the token; otherwise it stays valid until `exp`.
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from keepsake.config import Settings
from keepsake.core.utils import utc_now

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    """Decoded identity claim."""
    user_id: int
    username: str
    iat: datetime
    exp: datetime


class TokenCodec:
    """
    Issue and verify identity tokens.

    Built once at startup from `Settings` and kept on `app.state`; the signing
    secret is never read from module globals.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utc_now,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self.ttl = ttl
        self.algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenCodec:
        return cls(
            secret=settings.jwt_secret_key,
            ttl=timedelta(days=settings.jwt_expire_days),
            algorithm=settings.jwt_algorithm,
        )

    def issue(self, user_id: int, username: str) -> str:
        """Create a token for this user, valid for `ttl` from now."""
        now = self._clock()
        payload = {
            "user_id": user_id,
            "username": username,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(
            payload,
            self._secret,
            algorithm=self.algorithm,
            headers={"typ": "JWT"},
        )

    def verify(self, token: str | None) -> TokenClaims | None:
        """
        Decode and validate a token.

        Returns None for anything that isn't a well-formed, correctly signed,
        unexpired token carrying `user_id` and `username`. Never raises.
        """
        if not token or token.count(".") != 2:
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired token")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected invalid token: {e}")
            return None

        try:
            return TokenClaims(
                user_id=payload["user_id"],
                username=payload["username"],
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, PydanticValidationError):
            logger.debug("Rejected token with incomplete claims")
            return None
