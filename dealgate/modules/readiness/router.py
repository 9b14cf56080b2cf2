"""Readiness API router: requirement catalog, seller uploads, score and gap report."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.auth.dependencies import get_current_user, require_role
from dealgate.core.database import get_db
from dealgate.models.enums import PRIVILEGED_ROLES
from dealgate.modules.audit.service import AuditRecorder, get_audit_recorder
from dealgate.modules.readiness import service
from dealgate.modules.readiness.requirements import CATALOG_VERSION, REQUIREMENTS
from dealgate.modules.readiness.schemas import (
    AnalysisResult,
    CatalogResponse,
    GapReportResponse,
    ReadinessDocumentCreate,
    ReadinessDocumentResponse,
    ReadinessResponse,
    ReadinessUploadResponse,
    RequirementResponse,
)
from dealgate.schemas.auth import CurrentUser
from dealgate.services.storage import S3Storage, get_storage

router = APIRouter(prefix="/readiness", tags=["readiness"])


@router.get("/requirements", response_model=CatalogResponse)
async def get_requirements():
    return CatalogResponse(
        catalog_version=CATALOG_VERSION,
        requirements=[RequirementResponse.from_requirement(r) for r in REQUIREMENTS],
    )


@router.get("/listings/{listing_id}", response_model=ReadinessResponse)
async def get_readiness(
    listing_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await service.get_readiness(db, listing_id, current_user)
    return ReadinessResponse.from_result(result)


@router.get("/listings/{listing_id}/gap-report", response_model=GapReportResponse)
async def get_gap_report(
    listing_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_gap_report(db, listing_id, current_user)


@router.get("/listings/{listing_id}/documents", response_model=list[ReadinessDocumentResponse])
async def list_readiness_documents(
    listing_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    docs = await service.list_documents(db, listing_id, current_user)
    return [ReadinessDocumentResponse.model_validate(d) for d in docs]


@router.post(
    "/listings/{listing_id}/documents",
    response_model=ReadinessUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_readiness_document(
    listing_id: uuid.UUID,
    body: ReadinessDocumentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: S3Storage = Depends(get_storage),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    doc, upload_url, result = await service.register_document(
        db,
        listing_id,
        current_user,
        requirement_id=body.requirement_id,
        file_name=body.file_name,
        mime_type=body.mime_type,
        storage=storage,
        audit=audit,
        size_bytes=body.size_bytes,
        period_year=body.period_year,
        signed=body.signed,
    )
    return ReadinessUploadResponse(
        document=ReadinessDocumentResponse.model_validate(doc),
        upload_url=upload_url,
        readiness=ReadinessResponse.from_result(result),
    )


@router.delete("/documents/{document_id}", response_model=ReadinessResponse)
async def delete_readiness_document(
    document_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    result = await service.delete_document(db, document_id, current_user, audit=audit)
    return ReadinessResponse.from_result(result)


@router.post("/documents/{document_id}/analysis", response_model=ReadinessDocumentResponse)
async def apply_document_analysis(
    document_id: uuid.UUID,
    body: AnalysisResult,
    current_user: CurrentUser = Depends(require_role(list(PRIVILEGED_ROLES))),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    doc = await service.apply_analysis(
        db,
        document_id,
        current_user,
        audit=audit,
        score=body.score,
        status=body.status,
        findings=body.findings,
    )
    return ReadinessDocumentResponse.model_validate(doc)
