"""Data room audit trail API (room owners only)."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.auth.dependencies import get_current_user
from dealgate.core.database import get_db
from dealgate.models.enums import AuditAction
from dealgate.modules.audit.schemas import AuditEntryResponse, AuditListResponse
from dealgate.modules.dataroom import service as dataroom_service
from dealgate.schemas.auth import CurrentUser

router = APIRouter(prefix="/datarooms", tags=["audit"])


@router.get("/{room_id}/audit", response_model=AuditListResponse)
async def list_audit_entries(
    room_id: uuid.UUID,
    action: AuditAction | None = Query(None),
    actor_id: uuid.UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    entries, total = await dataroom_service.list_room_audit(
        db, room_id, current_user, action=action, actor_id=actor_id, limit=limit, offset=offset
    )
    return AuditListResponse(
        items=[AuditEntryResponse.model_validate(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )
