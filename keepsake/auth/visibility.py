"""
Partner resolution.

The visibility set is the set of user ids whose shared content the caller
may read: just the caller, or the caller and their partner. It is looked up
live on every request so a new link takes effect immediately.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from keepsake.db.models import User


def resolve_partner_id(db: Session, user_id: int) -> int | None:
    return db.execute(select(User.partner_id).where(User.id == user_id)).scalar_one_or_none()


def resolve_visibility(db: Session, user_id: int) -> frozenset[int]:
    """{user_id} if unlinked, otherwise {user_id, partner_id}."""
    partner_id = resolve_partner_id(db, user_id)
    if partner_id is None:
        return frozenset({user_id})
    return frozenset({user_id, partner_id})
