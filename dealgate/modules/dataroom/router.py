"""Data room API router: rooms, members, invitations, documents, policies and access URLs."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.auth.dependencies import get_current_user, verify_scan_callback
from dealgate.core.database import get_db
from dealgate.models.enums import AccessAction
from dealgate.modules.audit.service import AuditRecorder, get_audit_recorder
from dealgate.modules.dataroom import service
from dealgate.modules.dataroom.schemas import (
    AccessUrlResponse,
    AccessDecisionResponse,
    DocumentCreate,
    DocumentResponse,
    DocumentUploadResponse,
    InviteAccept,
    InviteAcceptResponse,
    InviteCreate,
    InviteResponse,
    MemberResponse,
    MemberSet,
    PolicyIn,
    RoomCreate,
    RoomResponse,
    RoomSettingsUpdate,
    ScanResultIn,
)
from dealgate.modules.notifications.service import Notifier, get_notifier
from dealgate.schemas.auth import CurrentUser
from dealgate.services.storage import S3Storage, get_storage

router = APIRouter(prefix="/datarooms", tags=["dataroom"])


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    body: RoomCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    room = await service.create_room(db, current_user, body.listing_id, body.name)
    return RoomResponse.model_validate(room)


@router.patch("/{room_id}/settings", response_model=RoomResponse)
async def update_room_settings(
    room_id: uuid.UUID,
    body: RoomSettingsUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    room = await service.update_settings(
        db,
        room_id,
        current_user,
        audit=audit,
        download_enabled=body.download_enabled,
        watermark_downloads=body.watermark_downloads,
    )
    return RoomResponse.model_validate(room)


@router.put("/{room_id}/members", response_model=MemberResponse)
async def set_member(
    room_id: uuid.UUID,
    body: MemberSet,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    member = await service.set_member(db, room_id, current_user, body.user_id, body.role)
    return MemberResponse.model_validate(member)


@router.post(
    "/{room_id}/invites",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invite(
    room_id: uuid.UUID,
    body: InviteCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    invite = await service.create_invite(
        db,
        room_id,
        current_user,
        email=body.email,
        role=body.role,
        notifier=notifier,
        audit=audit,
        message=body.message,
    )
    return InviteResponse.model_validate(invite)


@router.get("/{room_id}/invites", response_model=list[InviteResponse])
async def list_invites(
    room_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    invites = await service.list_invites(db, room_id, current_user)
    return [InviteResponse.model_validate(i) for i in invites]


@router.post("/invites/accept", response_model=InviteAcceptResponse)
async def accept_invite(
    body: InviteAccept,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    invite, role = await service.accept_invite(db, body.token, current_user, audit=audit)
    return InviteAcceptResponse(data_room_id=invite.data_room_id, role=role)


@router.get("/{room_id}/documents", response_model=list[DocumentResponse])
async def list_documents(
    room_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    visible = await service.list_documents(db, room_id, current_user)
    return [DocumentResponse.from_document(doc, decision) for doc, decision in visible]


@router.post(
    "/{room_id}/documents",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_document(
    room_id: uuid.UUID,
    body: DocumentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: S3Storage = Depends(get_storage),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    doc, upload_url = await service.register_document(
        db,
        room_id,
        current_user,
        file_name=body.file_name,
        mime_type=body.mime_type,
        storage=storage,
        audit=audit,
        size_bytes=body.size_bytes,
        policy=body.policy.to_policy() if body.policy else None,
    )
    return DocumentUploadResponse(document=DocumentResponse.from_document(doc), upload_url=upload_url)


@router.put("/documents/{document_id}/policy", response_model=DocumentResponse)
async def set_document_policy(
    document_id: uuid.UUID,
    body: PolicyIn,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    doc = await service.set_policy(db, document_id, current_user, body.to_policy(), audit=audit)
    return DocumentResponse.from_document(doc)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    await service.delete_document(db, document_id, current_user, audit=audit)


async def _access_url(
    action: AccessAction,
    document_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession,
    storage: S3Storage,
    audit: AuditRecorder,
) -> AccessUrlResponse:
    result = await service.get_access_url(db, document_id, current_user, action, storage, audit)
    return AccessUrlResponse(
        url=result.url,
        expires_in=result.expires_in,
        watermarked=result.watermarked,
        access=AccessDecisionResponse.from_decision(result.decision),
    )


@router.get("/documents/{document_id}/view-url", response_model=AccessUrlResponse)
async def get_view_url(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: S3Storage = Depends(get_storage),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    return await _access_url(AccessAction.VIEW, document_id, current_user, db, storage, audit)


@router.get("/documents/{document_id}/download-url", response_model=AccessUrlResponse)
async def get_download_url(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: S3Storage = Depends(get_storage),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    return await _access_url(AccessAction.DOWNLOAD, document_id, current_user, db, storage, audit)


@router.post(
    "/documents/{document_id}/scan-result",
    response_model=DocumentResponse,
    dependencies=[Depends(verify_scan_callback)],
)
async def record_scan_result(
    document_id: uuid.UUID,
    body: ScanResultIn,
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    doc = await service.record_scan_result(db, document_id, body.status, audit=audit, reason=body.reason)
    return DocumentResponse.from_document(doc)
