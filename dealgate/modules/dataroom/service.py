"""Data room service: rooms, members, invitations, documents, access decisions, policy changes.

Every view/download attempt goes through `check_access`, which resolves the
effective policy, writes exactly one audit entry and only then lets the caller
reach storage. A file is only served once the virus scanner has marked it clean.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta

import structlog
from sqlalchemy import exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.core.config import settings
from dealgate.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
    report_best_effort_failure,
)
from dealgate.models.audit import AuditLogEntry
from dealgate.models.base import as_utc, utcnow
from dealgate.models.core import Listing, Transaction, User
from dealgate.models.dataroom import (
    DataRoom,
    DataRoomDocument,
    DataRoomInvite,
    DataRoomMembership,
    DocumentGrant,
)
from dealgate.models.enums import (
    MANAGER_ROOM_ROLES,
    AccessAction,
    AuditAction,
    DataRoomRole,
    DocumentVisibility,
    InviteStatus,
    ScanStatus,
)
from dealgate.modules.audit import service as audit_service
from dealgate.modules.audit.service import AuditRecorder
from dealgate.modules.dataroom.visibility import (
    AccessDecision,
    DocumentPolicy,
    ViewerContext,
    ensure_valid_policy,
    normalize_grants,
    resolve,
)
from dealgate.modules.nda.service import find_access_nda
from dealgate.modules.notifications.service import Notifier
from dealgate.schemas.auth import CurrentUser
from dealgate.services.storage import S3Storage, dataroom_key

logger = structlog.get_logger()

OWNER_ROLES = frozenset({DataRoomRole.OWNER})
INVITABLE_ROLES = frozenset({DataRoomRole.EDITOR, DataRoomRole.VIEWER})


@dataclass
class AccessUrl:
    url: str
    expires_in: int
    watermarked: bool
    decision: AccessDecision


# ── Lookups & roles ──────────────────────────────────────────────────────────


async def get_room_or_raise(db: AsyncSession, room_id: uuid.UUID) -> DataRoom:
    room = await db.get(DataRoom, room_id)
    if room is None:
        raise NotFoundError("Data room not found", detail={"data_room_id": str(room_id)})
    return room


async def _get_document_or_raise(db: AsyncSession, document_id: uuid.UUID) -> DataRoomDocument:
    doc = await db.get(DataRoomDocument, document_id)
    if doc is None:
        raise NotFoundError("Document not found", detail={"document_id": str(document_id)})
    return doc


async def get_room_role(db: AsyncSession, room: DataRoom, user_id: uuid.UUID) -> DataRoomRole | None:
    """Membership role; the listing owner is always OWNER."""
    listing = await db.get(Listing, room.listing_id)
    if listing is not None and listing.user_id == user_id:
        return DataRoomRole.OWNER
    result = await db.execute(
        select(DataRoomMembership.role).where(
            DataRoomMembership.data_room_id == room.id,
            DataRoomMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def require_room_role(
    db: AsyncSession,
    room: DataRoom,
    actor: CurrentUser,
    allowed: frozenset[DataRoomRole],
) -> DataRoomRole:
    role = await get_room_role(db, room, actor.user_id)
    if role not in allowed:
        raise ForbiddenError(
            "Insufficient data room role",
            detail={"required": sorted(r.value for r in allowed)},
        )
    return role


async def build_viewer_context(
    db: AsyncSession, room: DataRoom, actor: CurrentUser
) -> ViewerContext:
    role = await get_room_role(db, room, actor.user_id)
    nda = await find_access_nda(db, room.listing_id, actor.user_id)
    has_transaction = (
        await db.execute(
            select(
                exists().where(
                    Transaction.listing_id == room.listing_id,
                    Transaction.buyer_id == actor.user_id,
                )
            )
        )
    ).scalar()
    return ViewerContext(
        now=utcnow(),
        room_role=role,
        nda_status=nda.status if nda else None,
        nda_expires_at=nda.expires_at if nda else None,
        has_transaction=bool(has_transaction),
        email=actor.email,
    )


def document_policy(doc: DataRoomDocument) -> DocumentPolicy:
    return DocumentPolicy(
        visibility=doc.visibility,
        download_blocked=doc.download_blocked,
        watermark_required=doc.watermark_required,
        grants=frozenset(g.email for g in doc.grants),
    )


def effective_policy(room: DataRoom, doc: DataRoomDocument) -> DocumentPolicy:
    return document_policy(doc).with_room_settings(room.download_enabled, room.watermark_downloads)


# ── Rooms & members ──────────────────────────────────────────────────────────


async def create_room(
    db: AsyncSession, actor: CurrentUser, listing_id: uuid.UUID, name: str | None = None
) -> DataRoom:
    """One room per listing, created by the listing owner."""
    listing = await db.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError("Listing not found", detail={"listing_id": str(listing_id)})
    if listing.user_id != actor.user_id:
        raise ForbiddenError("Only the listing owner can create its data room")

    room = DataRoom(listing_id=listing.id, name=name or f"Data room: {listing.display_title}")
    db.add(room)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Listing already has a data room") from e
    logger.info("dataroom.created", data_room_id=str(room.id), listing_id=str(listing_id))
    return room


async def set_member(
    db: AsyncSession,
    room_id: uuid.UUID,
    actor: CurrentUser,
    user_id: uuid.UUID,
    role: DataRoomRole,
) -> DataRoomMembership:
    """Add a member or change their role. OWNER only."""
    room = await get_room_or_raise(db, room_id)
    await require_room_role(db, room, actor, OWNER_ROLES)
    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found", detail={"user_id": str(user_id)})

    result = await db.execute(
        select(DataRoomMembership).where(
            DataRoomMembership.data_room_id == room.id,
            DataRoomMembership.user_id == user_id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        membership = DataRoomMembership(data_room_id=room.id, user_id=user_id, role=role)
        db.add(membership)
    else:
        membership.role = role
    await db.commit()
    logger.info("dataroom.member_set", data_room_id=str(room.id), user_id=str(user_id), role=role.value)
    return membership


# ── Invitations ──────────────────────────────────────────────────────────────


def _invite_link(token: str) -> str:
    return f"{settings.FRONTEND_URL}/dataroom/invite?token={token}"


def _is_expired(invite: DataRoomInvite) -> bool:
    return as_utc(invite.expires_at) < utcnow()


async def create_invite(
    db: AsyncSession,
    room_id: uuid.UUID,
    actor: CurrentUser,
    email: str,
    role: DataRoomRole,
    notifier: Notifier,
    audit: AuditRecorder,
    message: str | None = None,
) -> DataRoomInvite:
    """Invite an e-mail address as EDITOR or VIEWER. OWNER only."""
    room = await get_room_or_raise(db, room_id)
    await require_room_role(db, room, actor, OWNER_ROLES)
    if role not in INVITABLE_ROLES:
        raise ValidationError("Invitations grant EDITOR or VIEWER only", detail={"role": role.value})
    address = email.strip().lower()
    if not address:
        raise ValidationError("E-mail address is required")

    result = await db.execute(
        select(DataRoomInvite).where(
            DataRoomInvite.data_room_id == room.id,
            DataRoomInvite.email == address,
            DataRoomInvite.status.in_([InviteStatus.PENDING, InviteStatus.ACCEPTED]),
        )
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        if existing.status != InviteStatus.PENDING or not _is_expired(existing):
            raise ConflictError("An invitation already exists for this e-mail address")
        existing.status = InviteStatus.EXPIRED
        await db.flush()

    invitee = (
        await db.execute(select(User).where(func.lower(User.email) == address))
    ).scalar_one_or_none()
    if invitee is not None and await get_room_role(db, room, invitee.id) is not None:
        raise ConflictError("User already has access to this data room")

    invite = DataRoomInvite(
        data_room_id=room.id,
        email=address,
        role=role,
        token=secrets.token_hex(32),
        message=message,
        invited_by=actor.user_id,
        expires_at=utcnow() + timedelta(days=settings.INVITE_VALIDITY_DAYS),
    )
    db.add(invite)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("An invitation already exists for this e-mail address") from e
    logger.info("dataroom.invite_created", data_room_id=str(room.id), invite_id=str(invite.id))

    listing = await db.get(Listing, room.listing_id)
    try:
        notifier.send_email(
            address,
            "dataroom_invite",
            {
                "listing_title": listing.display_title if listing else None,
                "role": role.value,
                "message": message,
                "expires_at": as_utc(invite.expires_at).date().isoformat(),
                "link": _invite_link(invite.token),
            },
        )
    except Exception as e:
        report_best_effort_failure("dataroom_invite_email_failed", e, invite_id=str(invite.id))

    await audit.record(
        AuditAction.INVITE_SENT,
        actor,
        target_type="invite",
        target_id=invite.id,
        data_room_id=room.id,
        meta={"email": address, "role": role.value},
    )
    return invite


async def list_invites(
    db: AsyncSession, room_id: uuid.UUID, actor: CurrentUser
) -> list[DataRoomInvite]:
    room = await get_room_or_raise(db, room_id)
    await require_room_role(db, room, actor, OWNER_ROLES)
    result = await db.execute(
        select(DataRoomInvite)
        .where(DataRoomInvite.data_room_id == room.id)
        .order_by(DataRoomInvite.created_at.desc(), DataRoomInvite.id.desc())
    )
    return list(result.scalars().all())


async def accept_invite(
    db: AsyncSession, token: str, actor: CurrentUser, audit: AuditRecorder
) -> tuple[DataRoomInvite, DataRoomRole]:
    """
    Redeem an invitation for the signed-in user.

    The invite must be pending, unexpired and addressed to the caller's e-mail.
    A caller who already has a role keeps it; otherwise the invited role becomes
    their membership. Returns the invite and the caller's resulting role.
    """
    result = await db.execute(select(DataRoomInvite).where(DataRoomInvite.token == token))
    invite = result.scalar_one_or_none()
    if invite is None:
        raise NotFoundError("Invitation not found")
    if invite.status != InviteStatus.PENDING:
        raise ConflictError(
            "Invitation has already been used or has expired",
            detail={"status": invite.status.value},
        )
    if _is_expired(invite):
        invite.status = InviteStatus.EXPIRED
        await db.commit()
        raise InvalidOperationError("Invitation has expired")
    if invite.email != actor.email.strip().lower():
        raise ForbiddenError("This invitation was sent to another e-mail address")

    room = await get_room_or_raise(db, invite.data_room_id)
    current_role = await get_room_role(db, room, actor.user_id)

    now = utcnow()
    claimed = await db.execute(
        update(DataRoomInvite)
        .where(DataRoomInvite.id == invite.id, DataRoomInvite.status == InviteStatus.PENDING)
        .values(status=InviteStatus.ACCEPTED, accepted_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        await db.rollback()
        raise ConflictError("Invitation was accepted concurrently")
    if current_role is None:
        db.add(DataRoomMembership(data_room_id=room.id, user_id=actor.user_id, role=invite.role))
    await db.commit()
    await db.refresh(invite)

    role = current_role or invite.role
    logger.info(
        "dataroom.invite_accepted",
        invite_id=str(invite.id),
        data_room_id=str(room.id),
        role=role.value,
    )
    await audit.record(
        AuditAction.INVITE_ACCEPTED,
        actor,
        target_type="invite",
        target_id=invite.id,
        data_room_id=room.id,
        meta={"role": role.value, "already_member": current_role is not None},
    )
    return invite, role


async def update_settings(
    db: AsyncSession,
    room_id: uuid.UUID,
    actor: CurrentUser,
    audit: AuditRecorder,
    download_enabled: bool | None = None,
    watermark_downloads: bool | None = None,
) -> DataRoom:
    room = await get_room_or_raise(db, room_id)
    await require_room_role(db, room, actor, OWNER_ROLES)

    before = {"download_enabled": room.download_enabled, "watermark_downloads": room.watermark_downloads}
    if download_enabled is not None:
        room.download_enabled = download_enabled
    if watermark_downloads is not None:
        room.watermark_downloads = watermark_downloads
    after = {"download_enabled": room.download_enabled, "watermark_downloads": room.watermark_downloads}
    await db.commit()

    await audit.record(
        AuditAction.POLICY_CHANGE,
        actor,
        target_type="data_room",
        target_id=room.id,
        data_room_id=room.id,
        meta={"from": before, "to": after},
    )
    return room


# ── Documents ────────────────────────────────────────────────────────────────


async def list_documents(
    db: AsyncSession, room_id: uuid.UUID, actor: CurrentUser
) -> list[tuple[DataRoomDocument, AccessDecision]]:
    """Documents the caller can see, with the decision for each."""
    room = await get_room_or_raise(db, room_id)
    viewer = await build_viewer_context(db, room, actor)
    result = await db.execute(
        select(DataRoomDocument)
        .where(DataRoomDocument.data_room_id == room.id)
        .order_by(DataRoomDocument.created_at, DataRoomDocument.id)
    )
    visible = []
    for doc in result.scalars().all():
        decision = resolve(effective_policy(room, doc), viewer)
        if decision.can_view:
            visible.append((doc, decision))
    return visible


async def register_document(
    db: AsyncSession,
    room_id: uuid.UUID,
    actor: CurrentUser,
    file_name: str,
    mime_type: str,
    storage: S3Storage,
    audit: AuditRecorder,
    size_bytes: int | None = None,
    policy: DocumentPolicy | None = None,
) -> tuple[DataRoomDocument, str]:
    """Create the document row and return a presigned upload URL. OWNER/EDITOR only."""
    room = await get_room_or_raise(db, room_id)
    await require_room_role(db, room, actor, MANAGER_ROOM_ROLES)

    policy = _normalized(policy or DocumentPolicy(visibility=DocumentVisibility.NDA_ONLY))
    ensure_valid_policy(policy)

    doc_id = uuid.uuid4()
    key = dataroom_key(room.id, doc_id, file_name)
    doc = DataRoomDocument(
        id=doc_id,
        data_room_id=room.id,
        file_name=file_name,
        mime_type=mime_type,
        size_bytes=size_bytes,
        storage_key=key,
        uploaded_by=actor.user_id,
        scan_status=ScanStatus.PENDING if settings.SCAN_WEBHOOK_TOKEN else ScanStatus.CLEAN,
        visibility=policy.visibility,
        download_blocked=policy.download_blocked,
        watermark_required=policy.watermark_required,
        grants=[DocumentGrant(email=e) for e in sorted(policy.grants)],
    )
    db.add(doc)
    await db.commit()

    upload_url = storage.presign_upload(key, mime_type)
    logger.info("dataroom.document_registered", document_id=str(doc.id), data_room_id=str(room.id))
    await audit.record(
        AuditAction.UPLOAD,
        actor,
        target_type="document",
        target_id=doc.id,
        data_room_id=room.id,
        meta={"file_name": file_name, "mime_type": mime_type, "policy": policy.to_dict()},
    )
    return doc, upload_url


async def delete_document(
    db: AsyncSession, document_id: uuid.UUID, actor: CurrentUser, audit: AuditRecorder
) -> None:
    doc = await _get_document_or_raise(db, document_id)
    room = await get_room_or_raise(db, doc.data_room_id)
    await require_room_role(db, room, actor, MANAGER_ROOM_ROLES)

    meta = {"file_name": doc.file_name, "storage_key": doc.storage_key}
    await db.delete(doc)
    await db.commit()

    logger.info("dataroom.document_deleted", document_id=str(document_id))
    await audit.record(
        AuditAction.DELETE,
        actor,
        target_type="document",
        target_id=document_id,
        data_room_id=room.id,
        meta=meta,
    )


def _normalized(policy: DocumentPolicy) -> DocumentPolicy:
    """Grants only mean something under CUSTOM; elsewhere they are cleared."""
    grants = normalize_grants(policy.grants) if policy.visibility == DocumentVisibility.CUSTOM else frozenset()
    return DocumentPolicy(
        visibility=policy.visibility,
        download_blocked=policy.download_blocked,
        watermark_required=policy.watermark_required,
        grants=grants,
    )


async def set_policy(
    db: AsyncSession,
    document_id: uuid.UUID,
    actor: CurrentUser,
    policy: DocumentPolicy,
    audit: AuditRecorder,
) -> DataRoomDocument:
    """Replace a document's policy. OWNER/EDITOR only; invalid policies are never persisted."""
    doc = await _get_document_or_raise(db, document_id)
    room = await get_room_or_raise(db, doc.data_room_id)
    await require_room_role(db, room, actor, MANAGER_ROOM_ROLES)

    new_policy = _normalized(policy)
    ensure_valid_policy(new_policy)
    old_policy = document_policy(doc)

    doc.visibility = new_policy.visibility
    doc.download_blocked = new_policy.download_blocked
    doc.watermark_required = new_policy.watermark_required
    for grant in list(doc.grants):
        if grant.email not in new_policy.grants:
            doc.grants.remove(grant)
    existing = {g.email for g in doc.grants}
    for email in sorted(new_policy.grants - existing):
        doc.grants.append(DocumentGrant(email=email))
    await db.commit()

    logger.info(
        "dataroom.policy_changed",
        document_id=str(doc.id),
        visibility=new_policy.visibility.value,
    )
    await audit.record(
        AuditAction.POLICY_CHANGE,
        actor,
        target_type="document",
        target_id=doc.id,
        data_room_id=room.id,
        meta={"from": old_policy.to_dict(), "to": new_policy.to_dict()},
    )
    return doc


# ── Access ───────────────────────────────────────────────────────────────────


async def check_access(
    db: AsyncSession,
    document_id: uuid.UUID,
    actor: CurrentUser,
    action: AccessAction,
    audit: AuditRecorder,
) -> tuple[DataRoomDocument, AccessDecision]:
    """Resolve access for one attempt and record it, granted or denied."""
    doc = await _get_document_or_raise(db, document_id)
    room = await get_room_or_raise(db, doc.data_room_id)
    viewer = await build_viewer_context(db, room, actor)
    decision = resolve(effective_policy(room, doc), viewer)

    allowed = decision.can_view if action == AccessAction.VIEW else decision.can_download
    granted = allowed and doc.scan_status == ScanStatus.CLEAN
    await audit.record(
        AuditAction(action.value),
        actor,
        target_type="document",
        target_id=doc.id,
        data_room_id=room.id,
        meta={"granted": granted, "scan_status": doc.scan_status.value, **decision.to_dict()},
    )
    logger.info(
        "dataroom.access_checked",
        document_id=str(doc.id),
        action=action.value,
        granted=granted,
        reason=decision.reason,
    )
    return doc, decision


async def get_access_url(
    db: AsyncSession,
    document_id: uuid.UUID,
    actor: CurrentUser,
    action: AccessAction,
    storage: S3Storage,
    audit: AuditRecorder,
) -> AccessUrl:
    doc, decision = await check_access(db, document_id, actor, action, audit)
    if action == AccessAction.VIEW and not decision.can_view:
        raise ForbiddenError("You do not have access to this document", detail=decision.to_dict())
    if action == AccessAction.DOWNLOAD and not decision.can_download:
        raise ForbiddenError("Download is not permitted for this document", detail=decision.to_dict())
    if doc.scan_status == ScanStatus.BLOCKED:
        raise ForbiddenError("The file was blocked by the virus scan", detail={"scan_status": doc.scan_status.value})
    if doc.scan_status == ScanStatus.PENDING:
        raise ForbiddenError("The file is still being scanned", detail={"scan_status": doc.scan_status.value})

    if decision.requires_watermark:
        url = storage.watermark_url(doc.storage_key, actor.email)
        if url is not None:
            return AccessUrl(url, storage.ttl_seconds, True, decision)
        logger.warning("watermark_service_not_configured", document_id=str(doc.id))

    url = storage.presign_download(doc.storage_key, doc.file_name, inline=action == AccessAction.VIEW)
    return AccessUrl(url, storage.ttl_seconds, False, decision)


async def record_scan_result(
    db: AsyncSession,
    document_id: uuid.UUID,
    result: ScanStatus,
    audit: AuditRecorder,
    reason: str | None = None,
) -> DataRoomDocument:
    """Apply the virus scanner's verdict. A later verdict replaces an earlier one."""
    if result == ScanStatus.PENDING:
        raise ValidationError("Scan result must be clean or blocked", detail={"status": result.value})
    doc = await _get_document_or_raise(db, document_id)
    previous = doc.scan_status
    doc.scan_status = result
    await db.commit()

    logger.info(
        "dataroom.scan_recorded",
        document_id=str(doc.id),
        from_status=previous.value,
        to_status=result.value,
    )
    await audit.record(
        AuditAction.VIRUS_SCAN,
        None,
        target_type="document",
        target_id=doc.id,
        data_room_id=doc.data_room_id,
        meta={"from": previous.value, "to": result.value, "reason": reason},
    )
    return doc


# ── Audit ────────────────────────────────────────────────────────────────────


async def list_room_audit(
    db: AsyncSession,
    room_id: uuid.UUID,
    actor: CurrentUser,
    action: AuditAction | None = None,
    actor_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditLogEntry], int]:
    """Audit trail of a room. OWNER only."""
    room = await get_room_or_raise(db, room_id)
    await require_room_role(db, room, actor, OWNER_ROLES)
    return await audit_service.list_entries(
        db, room.id, action=action, actor_id=actor_id, limit=limit, offset=offset
    )
