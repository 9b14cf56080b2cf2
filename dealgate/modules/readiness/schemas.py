"""Readiness Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dealgate.models.enums import ReadinessStatus, RequirementCategory
from dealgate.modules.readiness.engine import ReadinessResult
from dealgate.modules.readiness.requirements import CATALOG_VERSION, Requirement


class ReadinessDocumentCreate(BaseModel):
    requirement_id: str = Field(min_length=1, max_length=100)
    file_name: str = Field(min_length=1, max_length=500)
    mime_type: str = Field(min_length=1, max_length=255)
    size_bytes: int | None = Field(default=None, ge=0)
    period_year: int | None = Field(default=None, ge=1900, le=2100)
    signed: bool | None = None


class AnalysisResult(BaseModel):
    """Opaque output of the document content analyzer."""

    score: float | None = None
    status: str | None = Field(default=None, max_length=30)
    findings: list[Any] | None = None


class ReadinessDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    listing_id: uuid.UUID
    requirement_id: str
    category: RequirementCategory
    file_name: str
    mime_type: str
    size_bytes: int | None
    period_year: int | None
    signed: bool | None
    verified: bool
    analysis_status: str | None
    analysis_score: float | None
    uploaded_by: uuid.UUID | None
    created_at: datetime


class RequirementResponse(BaseModel):
    id: str
    category: RequirementCategory
    title: str
    description: str
    mandatory: bool
    doc_types: list[str]
    requires_signature: bool
    min_years: int | None
    period_type: str | None

    @classmethod
    def from_requirement(cls, req: Requirement) -> "RequirementResponse":
        return cls(
            id=req.id,
            category=req.category,
            title=req.title,
            description=req.description,
            mandatory=req.mandatory,
            doc_types=list(req.doc_types),
            requires_signature=req.requires_signature,
            min_years=req.min_years,
            period_type=req.period_type,
        )


class CatalogResponse(BaseModel):
    catalog_version: str
    requirements: list[RequirementResponse]


class RequirementStatusResponse(BaseModel):
    id: str
    category: RequirementCategory
    title: str
    description: str
    mandatory: bool
    doc_types: list[str]
    requires_signature: bool
    min_years: int | None
    status: ReadinessStatus
    issues: list[str]
    matched_documents: list[dict[str, Any]]


class CategoryScoreResponse(BaseModel):
    category: RequirementCategory
    total: int
    fulfilled: int
    score: int


class GapResponse(BaseModel):
    requirement_id: str
    title: str
    category: RequirementCategory
    status: ReadinessStatus
    reason: str


class ReadinessResponse(BaseModel):
    catalog_version: str
    total_score: int
    total_mandatory: int
    fulfilled_mandatory: int
    requirements: list[RequirementStatusResponse]
    categories: list[CategoryScoreResponse]
    gaps: list[GapResponse]

    @classmethod
    def from_result(cls, result: ReadinessResult) -> "ReadinessResponse":
        return cls(catalog_version=CATALOG_VERSION, **result.to_dict())


class ReadinessUploadResponse(BaseModel):
    document: ReadinessDocumentResponse
    upload_url: str
    readiness: ReadinessResponse


class CategorySummary(CategoryScoreResponse):
    label: str
    missing: int


class OptionalGap(BaseModel):
    requirement_id: str
    title: str
    category: RequirementCategory
    status: ReadinessStatus


class GapReportResponse(BaseModel):
    listing_id: uuid.UUID
    listing_title: str
    catalog_version: str
    generated_at: datetime
    overall_score: int
    total_mandatory: int
    fulfilled_mandatory: int
    categories: list[CategorySummary]
    gaps: list[GapResponse]
    missing_optional: list[OptionalGap]
