"""Readiness service: seller uploads, recompute and gap report.

The score is never stored: every read recomputes from the listing's full
document set, so concurrent uploads can at worst make a result slightly stale.
"""

import uuid
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.core.errors import ForbiddenError, NotFoundError
from dealgate.models.base import utcnow
from dealgate.models.core import Listing
from dealgate.models.dataroom import DataRoom
from dealgate.models.enums import AuditAction
from dealgate.models.readiness import ReadinessDocument
from dealgate.modules.audit.service import AuditRecorder
from dealgate.modules.readiness.engine import (
    ReadinessResult,
    UploadedDocumentMeta,
    compute_readiness,
)
from dealgate.modules.readiness.requirements import (
    CATALOG_VERSION,
    CATEGORY_LABELS,
    REQUIREMENTS,
    get_requirement,
)
from dealgate.schemas.auth import CurrentUser
from dealgate.services.storage import S3Storage, readiness_key

logger = structlog.get_logger()

ANALYSIS_APPROVED = "approved"


async def _get_listing_or_raise(db: AsyncSession, listing_id: uuid.UUID) -> Listing:
    listing = await db.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError("Listing not found", detail={"listing_id": str(listing_id)})
    return listing


async def _get_document_or_raise(db: AsyncSession, document_id: uuid.UUID) -> ReadinessDocument:
    doc = await db.get(ReadinessDocument, document_id)
    if doc is None:
        raise NotFoundError("Readiness document not found", detail={"document_id": str(document_id)})
    return doc


def _require_owner(listing: Listing, actor: CurrentUser, allow_privileged: bool = False) -> None:
    if listing.user_id == actor.user_id:
        return
    if allow_privileged and actor.is_privileged:
        return
    raise ForbiddenError("Only the listing owner can manage readiness documents")


async def _room_id_for_listing(db: AsyncSession, listing_id: uuid.UUID) -> uuid.UUID | None:
    result = await db.execute(select(DataRoom.id).where(DataRoom.listing_id == listing_id))
    return result.scalar_one_or_none()


def to_meta(doc: ReadinessDocument) -> UploadedDocumentMeta:
    return UploadedDocumentMeta(
        requirement_id=doc.requirement_id,
        category=doc.category,
        mime_type=doc.mime_type,
        period_year=doc.period_year,
        signed=doc.signed,
        verified=doc.verified,
        file_name=doc.file_name,
        id=doc.id,
    )


async def _load_documents(db: AsyncSession, listing_id: uuid.UUID) -> list[ReadinessDocument]:
    result = await db.execute(
        select(ReadinessDocument)
        .where(ReadinessDocument.listing_id == listing_id)
        .order_by(ReadinessDocument.created_at, ReadinessDocument.id)
    )
    return list(result.scalars().all())


async def recompute(db: AsyncSession, listing_id: uuid.UUID) -> ReadinessResult:
    docs = await _load_documents(db, listing_id)
    return compute_readiness([to_meta(d) for d in docs], REQUIREMENTS)


# ── Documents ────────────────────────────────────────────────────────────────


async def register_document(
    db: AsyncSession,
    listing_id: uuid.UUID,
    actor: CurrentUser,
    requirement_id: str,
    file_name: str,
    mime_type: str,
    storage: S3Storage,
    audit: AuditRecorder,
    size_bytes: int | None = None,
    period_year: int | None = None,
    signed: bool | None = None,
) -> tuple[ReadinessDocument, str, ReadinessResult]:
    """Record a seller upload against a catalog requirement and return a presigned URL."""
    listing = await _get_listing_or_raise(db, listing_id)
    _require_owner(listing, actor)
    requirement = get_requirement(requirement_id)
    if requirement is None:
        raise NotFoundError("Unknown requirement", detail={"requirement_id": requirement_id})

    doc_id = uuid.uuid4()
    key = readiness_key(listing.id, doc_id, file_name)
    doc = ReadinessDocument(
        id=doc_id,
        listing_id=listing.id,
        requirement_id=requirement.id,
        category=requirement.category,
        file_name=file_name,
        mime_type=mime_type,
        size_bytes=size_bytes,
        storage_key=key,
        period_year=period_year,
        signed=signed,
        uploaded_by=actor.user_id,
    )
    db.add(doc)
    await db.commit()

    upload_url = storage.presign_upload(key, mime_type)
    logger.info(
        "readiness.document_registered",
        document_id=str(doc.id),
        listing_id=str(listing.id),
        requirement_id=requirement.id,
    )
    await audit.record(
        AuditAction.READINESS_UPLOAD,
        actor,
        target_type="readiness_document",
        target_id=doc.id,
        data_room_id=await _room_id_for_listing(db, listing.id),
        meta={"requirement_id": requirement.id, "file_name": file_name, "period_year": period_year},
    )
    return doc, upload_url, await recompute(db, listing.id)


async def list_documents(
    db: AsyncSession, listing_id: uuid.UUID, actor: CurrentUser
) -> list[ReadinessDocument]:
    listing = await _get_listing_or_raise(db, listing_id)
    _require_owner(listing, actor, allow_privileged=True)
    return await _load_documents(db, listing.id)


async def delete_document(
    db: AsyncSession, document_id: uuid.UUID, actor: CurrentUser, audit: AuditRecorder
) -> ReadinessResult:
    """Remove an upload (listing owner or uploader) and return the recomputed result."""
    doc = await _get_document_or_raise(db, document_id)
    listing = await _get_listing_or_raise(db, doc.listing_id)
    if actor.user_id not in (listing.user_id, doc.uploaded_by):
        raise ForbiddenError("Only the listing owner or the uploader can delete this document")

    listing_id = listing.id
    meta = {"requirement_id": doc.requirement_id, "file_name": doc.file_name}
    await db.delete(doc)
    await db.commit()

    logger.info("readiness.document_deleted", document_id=str(document_id), listing_id=str(listing_id))
    await audit.record(
        AuditAction.READINESS_DELETE,
        actor,
        target_type="readiness_document",
        target_id=document_id,
        data_room_id=await _room_id_for_listing(db, listing_id),
        meta=meta,
    )
    return await recompute(db, listing_id)


async def apply_analysis(
    db: AsyncSession,
    document_id: uuid.UUID,
    actor: CurrentUser,
    audit: AuditRecorder,
    score: float | None,
    status: str | None,
    findings: list[Any] | None = None,
) -> ReadinessDocument:
    """Store the analyzer's opaque output; an approved status marks the upload verified."""
    doc = await _get_document_or_raise(db, document_id)
    doc.analysis_score = score
    doc.analysis_status = status
    doc.analysis_findings = findings
    doc.verified = (status or "").lower() == ANALYSIS_APPROVED
    await db.commit()

    logger.info(
        "readiness.analysis_applied",
        document_id=str(doc.id),
        status=status,
        verified=doc.verified,
    )
    await audit.record(
        AuditAction.READINESS_ANALYSIS,
        actor,
        target_type="readiness_document",
        target_id=doc.id,
        data_room_id=await _room_id_for_listing(db, doc.listing_id),
        meta={"score": score, "status": status, "verified": doc.verified},
    )
    return doc


# ── Scoring ──────────────────────────────────────────────────────────────────


async def get_readiness(
    db: AsyncSession, listing_id: uuid.UUID, actor: CurrentUser
) -> ReadinessResult:
    listing = await _get_listing_or_raise(db, listing_id)
    _require_owner(listing, actor, allow_privileged=True)
    return await recompute(db, listing.id)


async def get_gap_report(
    db: AsyncSession, listing_id: uuid.UUID, actor: CurrentUser
) -> dict[str, Any]:
    """Readiness grouped for reporting: category summaries and open items."""
    listing = await _get_listing_or_raise(db, listing_id)
    _require_owner(listing, actor, allow_privileged=True)
    result = await recompute(db, listing.id)

    missing_optional = [
        {
            "requirement_id": r.requirement.id,
            "title": r.requirement.title,
            "category": r.requirement.category.value,
            "status": r.status.value,
        }
        for r in result.requirements
        if not r.requirement.mandatory and not r.satisfied
    ]
    generated_at: datetime = utcnow()
    return {
        "listing_id": listing.id,
        "listing_title": listing.display_title,
        "catalog_version": CATALOG_VERSION,
        "generated_at": generated_at,
        "overall_score": result.total_score,
        "total_mandatory": result.total_mandatory,
        "fulfilled_mandatory": result.fulfilled_mandatory,
        "categories": [
            {**c.to_dict(), "label": CATEGORY_LABELS[c.category], "missing": c.total - c.fulfilled}
            for c in result.categories
        ],
        "gaps": [g.to_dict() for g in result.gaps],
        "missing_optional": missing_optional,
    }
