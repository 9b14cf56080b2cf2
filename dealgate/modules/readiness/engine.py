"""Readiness scoring engine. Pure deterministic recompute, no I/O.

Every call recomputes from the full document set, so the result depends only on
the documents and the catalog, never on insertion order or earlier results.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from dealgate.models.enums import (
    SATISFIED_READINESS_STATUSES,
    ReadinessStatus,
    RequirementCategory,
)
from dealgate.modules.readiness.requirements import REQUIREMENTS, Requirement

MISSING_REASON = "missing"


@dataclass(frozen=True)
class UploadedDocumentMeta:
    """The projection of an uploaded readiness document the engine needs."""

    requirement_id: str
    category: RequirementCategory | None = None
    mime_type: str | None = None
    period_year: int | None = None
    signed: bool | None = None
    verified: bool = False
    file_name: str | None = None
    id: uuid.UUID | None = None

    def sort_key(self) -> tuple:
        return (
            self.period_year if self.period_year is not None else -1,
            self.file_name or "",
            str(self.id) if self.id else "",
            self.mime_type or "",
            self.category.value if self.category else "",
            0 if self.signed is None else 1 + int(self.signed),
            self.verified,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id) if self.id else None,
            "requirement_id": self.requirement_id,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "period_year": self.period_year,
            "signed": self.signed,
            "verified": self.verified,
        }


@dataclass
class RequirementResult:
    requirement: Requirement
    status: ReadinessStatus
    matched: list[UploadedDocumentMeta] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return self.status in SATISFIED_READINESS_STATUSES

    def to_dict(self) -> dict[str, Any]:
        req = self.requirement
        return {
            "id": req.id,
            "category": req.category.value,
            "title": req.title,
            "description": req.description,
            "mandatory": req.mandatory,
            "doc_types": list(req.doc_types),
            "requires_signature": req.requires_signature,
            "min_years": req.min_years,
            "status": self.status.value,
            "issues": list(self.issues),
            "matched_documents": [d.to_dict() for d in self.matched],
        }


@dataclass
class CategoryScore:
    category: RequirementCategory
    total: int
    fulfilled: int
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "total": self.total,
            "fulfilled": self.fulfilled,
            "score": self.score,
        }


@dataclass
class Gap:
    requirement_id: str
    title: str
    category: RequirementCategory
    status: ReadinessStatus
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "requirement_id": self.requirement_id,
            "title": self.title,
            "category": self.category.value,
            "status": self.status.value,
            "reason": self.reason,
        }


@dataclass
class ReadinessResult:
    requirements: list[RequirementResult]
    categories: list[CategoryScore]
    total_score: int
    total_mandatory: int
    fulfilled_mandatory: int
    gaps: list[Gap]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_score": self.total_score,
            "total_mandatory": self.total_mandatory,
            "fulfilled_mandatory": self.fulfilled_mandatory,
            "requirements": [r.to_dict() for r in self.requirements],
            "categories": [c.to_dict() for c in self.categories],
            "gaps": [g.to_dict() for g in self.gaps],
        }


def percentage(fulfilled: int, total: int) -> int:
    """Integer percentage, rounded half up. An empty total is vacuously complete."""
    if total == 0:
        return 100
    return (200 * fulfilled + total) // (2 * total)


def evaluate_requirement(
    requirement: Requirement, docs: Iterable[UploadedDocumentMeta]
) -> RequirementResult:
    matched = sorted(
        (d for d in docs if d.requirement_id == requirement.id),
        key=UploadedDocumentMeta.sort_key,
    )
    if not matched:
        return RequirementResult(requirement, ReadinessStatus.MISSING)

    issues: list[str] = []
    if requirement.requires_signature and not any(d.signed is True for d in matched):
        issues.append("signature missing")
    if requirement.min_years:
        years = {d.period_year for d in matched if d.period_year is not None}
        if len(years) < requirement.min_years:
            issues.append(f"{len(years)} of {requirement.min_years} years covered")

    if issues:
        status = ReadinessStatus.INCOMPLETE
    elif any(d.verified for d in matched):
        status = ReadinessStatus.VERIFIED
    else:
        status = ReadinessStatus.UPLOADED
    return RequirementResult(requirement, status, matched, issues)


def compute_readiness(
    docs: Sequence[UploadedDocumentMeta],
    catalog: Sequence[Requirement] = REQUIREMENTS,
) -> ReadinessResult:
    results = [evaluate_requirement(req, docs) for req in catalog]
    mandatory = [r for r in results if r.requirement.mandatory]

    categories: list[CategoryScore] = []
    for category in RequirementCategory:
        in_category = [r for r in mandatory if r.requirement.category == category]
        fulfilled = sum(1 for r in in_category if r.satisfied)
        categories.append(
            CategoryScore(
                category=category,
                total=len(in_category),
                fulfilled=fulfilled,
                score=percentage(fulfilled, len(in_category)),
            )
        )

    gaps = [
        Gap(
            requirement_id=r.requirement.id,
            title=r.requirement.title,
            category=r.requirement.category,
            status=r.status,
            reason=", ".join(r.issues) if r.issues else MISSING_REASON,
        )
        for r in mandatory
        if not r.satisfied
    ]

    fulfilled_mandatory = sum(1 for r in mandatory if r.satisfied)
    return ReadinessResult(
        requirements=results,
        categories=categories,
        total_score=percentage(fulfilled_mandatory, len(mandatory)),
        total_mandatory=len(mandatory),
        fulfilled_mandatory=fulfilled_mandatory,
        gaps=gaps,
    )
