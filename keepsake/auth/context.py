"""
Auth context - the "who is asking" for each request.

This is the lightweight object passed to route handlers and services. It is
derived fresh from the bearer token on every request; there is no session.
"""

from __future__ import annotations

from dataclasses import dataclass

from keepsake.auth.tokens import TokenClaims


@dataclass(frozen=True)
class AuthContext:
    """
    Verified caller identity.

    Usage in routes:
        def my_route(ctx: AuthContext = Depends(require_auth())):
            print(f"User {ctx.user_id} ({ctx.username})")
    """

    user_id: int
    username: str

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> AuthContext:
        return cls(user_id=claims.user_id, username=claims.username)

    def is_self(self, user_id: int | None) -> bool:
        return user_id is not None and user_id == self.user_id
