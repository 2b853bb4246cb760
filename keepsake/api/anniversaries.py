# =============================================================================
# Anniversaries API Routes
# =============================================================================
#
#   GET    /api/anniversaries?action=list|single|current|countdowns
#   POST   /api/anniversaries?action=create|countdown
#   PUT    /api/anniversaries?id=
#   DELETE /api/anniversaries?id=                   (anniversary)
#   DELETE /api/anniversaries?action=countdown&id=  (countdown, creator only)
#
# =============================================================================

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from keepsake.api.deps import parse_payload, request_payload, require_id
from keepsake.auth.context import AuthContext
from keepsake.auth.policies import require_auth
from keepsake.core import responses
from keepsake.db.database import get_db
from keepsake.schemas import AnniversaryCreate, AnniversaryUpdate, CountdownCreate
from keepsake.services import anniversaries

router = APIRouter(prefix="/anniversaries", tags=["anniversaries"])


@router.get("")
def anniversaries_get(
    action: str = "list",
    anniversary_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "single":
        anniversary_id = require_id(anniversary_id, "Anniversary")
        return responses.success(anniversaries.get_anniversary(db, ctx, anniversary_id))

    if action == "current":
        current = anniversaries.current_anniversary(db, ctx)
        if current is None:
            return responses.success(None, "No anniversary found")
        return responses.success(current)

    if action == "countdowns":
        return responses.success(anniversaries.list_countdowns(db, ctx))

    return responses.success(anniversaries.list_anniversaries(db, ctx))


@router.post("")
def anniversaries_post(
    action: str = "create",
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    db: Session = Depends(get_db),
):
    if action == "countdown":
        countdown = anniversaries.create_countdown(db, ctx, parse_payload(CountdownCreate, payload))
        return responses.success(countdown, "Countdown created! ⏰", 201)

    anniversary = anniversaries.create_anniversary(db, ctx, parse_payload(AnniversaryCreate, payload))
    return responses.success(anniversary, "Anniversary created! 🎉", 201)


@router.put("")
def anniversaries_put(
    anniversary_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    db: Session = Depends(get_db),
):
    anniversary_id = require_id(anniversary_id, "Anniversary")
    anniversary = anniversaries.update_anniversary(
        db, ctx, anniversary_id, parse_payload(AnniversaryUpdate, payload)
    )
    return responses.success(anniversary, "Anniversary updated")


@router.delete("")
def anniversaries_delete(
    action: str = "",
    item_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "countdown":
        anniversaries.delete_countdown(db, ctx, require_id(item_id, "Countdown"))
        return responses.success(None, "Countdown deleted")

    anniversaries.delete_anniversary(db, ctx, require_id(item_id, "Anniversary"))
    return responses.success(None, "Anniversary deleted")
