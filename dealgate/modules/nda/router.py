"""NDA requests API router."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.auth.dependencies import get_current_user
from dealgate.core.database import get_db
from dealgate.models.enums import NDAStatus
from dealgate.modules.audit.service import AuditRecorder, get_audit_recorder
from dealgate.modules.nda import service
from dealgate.modules.nda.schemas import NDACreate, NDAListResponse, NDAResponse, NDAStatusUpdate
from dealgate.modules.notifications.service import Notifier, get_notifier
from dealgate.schemas.auth import CurrentUser

router = APIRouter(prefix="/nda-requests", tags=["nda"])


@router.post("", response_model=NDAResponse, status_code=status.HTTP_201_CREATED)
async def create_nda_request(
    body: NDACreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    nda = await service.create_request(
        db,
        current_user,
        body.listing_id,
        notifier=notifier,
        audit=audit,
        message=body.message,
        buyer_profile=body.buyer_profile,
    )
    return NDAResponse.model_validate(nda)


@router.get("", response_model=NDAListResponse)
async def list_nda_requests(
    listing_id: uuid.UUID | None = Query(None),
    status_filter: NDAStatus | None = Query(None, alias="status"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await service.list_requests(db, current_user, listing_id=listing_id, status=status_filter)
    return NDAListResponse(
        items=[NDAResponse.model_validate(n) for n in items],
        total=len(items),
    )


@router.get("/{nda_id}", response_model=NDAResponse)
async def get_nda_request(
    nda_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    nda = await service.get_request(db, nda_id, current_user)
    return NDAResponse.model_validate(nda)


@router.patch("/{nda_id}", response_model=NDAResponse)
async def update_nda_status(
    nda_id: uuid.UUID,
    body: NDAStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """The only status-transition entry point; there is no bulk variant."""
    nda = await service.transition(
        db,
        nda_id,
        current_user,
        body.status,
        notifier=notifier,
        audit=audit,
        rejection_reason=body.rejection_reason,
    )
    return NDAResponse.model_validate(nda)


@router.delete("/{nda_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_nda_request(
    nda_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    await service.delete_request(db, nda_id, current_user, audit=audit)
