# =============================================================================
# Memories API Routes
# =============================================================================
#
#   GET    /api/memories?action=list|single|on-this-day|milestones|timeline
#   POST   /api/memories?action=create|milestone
#   PUT    /api/memories?id=
#   DELETE /api/memories?id=                  (memory)
#   DELETE /api/memories?action=milestone&id= (milestone)
#
# =============================================================================

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from keepsake.api.deps import page_window, parse_payload, request_payload, require_id
from keepsake.auth.context import AuthContext
from keepsake.auth.policies import require_auth
from keepsake.core import responses
from keepsake.db.database import get_db
from keepsake.schemas import MemoryCreate, MemoryUpdate, MilestoneCreate
from keepsake.services import memories

router = APIRouter(prefix="/memories", tags=["memories"])

MAX_PAGE_SIZE = 50


@router.get("")
def memories_get(
    action: str = "list",
    memory_id: int | None = Query(None, alias="id"),
    page: int = 1,
    limit: int = 20,
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "single":
        return responses.success(memories.get_memory(db, ctx, require_id(memory_id, "Memory")))
    if action == "on-this-day":
        return responses.success(memories.on_this_day(db, ctx))
    if action == "milestones":
        return responses.success(memories.list_milestones(db, ctx))
    if action == "timeline":
        return responses.success(memories.timeline(db, ctx))

    page, limit = page_window(page, limit, MAX_PAGE_SIZE)
    rows, total = memories.list_memories(db, ctx, page=page, limit=limit)
    return responses.paginate(rows, total, page, limit)


@router.post("")
def memories_post(
    action: str = "create",
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    db: Session = Depends(get_db),
):
    if action == "milestone":
        milestone = memories.create_milestone(db, ctx, parse_payload(MilestoneCreate, payload))
        return responses.success(milestone, "Milestone created! 🎉", 201)

    memory = memories.create_memory(db, ctx, parse_payload(MemoryCreate, payload))
    return responses.success(memory, "Memory created! 💭", 201)


@router.put("")
def memories_put(
    memory_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    payload: dict[str, Any] = Depends(request_payload),
    db: Session = Depends(get_db),
):
    memory_id = require_id(memory_id, "Memory")
    memory = memories.update_memory(db, ctx, memory_id, parse_payload(MemoryUpdate, payload))
    return responses.success(memory, "Memory updated")


@router.delete("")
def memories_delete(
    action: str = "",
    item_id: int | None = Query(None, alias="id"),
    ctx: AuthContext = Depends(require_auth()),
    db: Session = Depends(get_db),
):
    if action == "milestone":
        memories.delete_milestone(db, ctx, require_id(item_id, "Milestone"))
        return responses.success(None, "Milestone deleted")

    memories.delete_memory(db, ctx, require_id(item_id, "Memory"))
    return responses.success(None, "Memory deleted")
