"""Readiness upload metadata: the projection of a seller upload the scorer needs."""

import uuid
from typing import Any

from sqlalchemy import Float, ForeignKey, Index, Integer, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from dealgate.models.base import BaseModel, JSONType
from dealgate.models.enums import RequirementCategory


class ReadinessDocument(BaseModel):
    __tablename__ = "readiness_documents"
    __table_args__ = (
        Index("ix_readiness_documents_listing_id", "listing_id"),
        Index("ix_readiness_documents_listing_requirement", "listing_id", "requirement_id"),
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    requirement_id: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[RequirementCategory] = mapped_column(nullable=False)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int | None] = mapped_column(Integer)
    storage_key: Mapped[str] = mapped_column(String(1000), nullable=False)
    period_year: Mapped[int | None] = mapped_column(Integer)
    signed: Mapped[bool | None] = mapped_column()
    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )

    # Opaque analyzer output; "approved" promotes the requirement to verified
    analysis_status: Mapped[str | None] = mapped_column(String(30))
    analysis_score: Mapped[float | None] = mapped_column(Float)
    analysis_findings: Mapped[list[Any] | None] = mapped_column(JSONType)
    verified: Mapped[bool] = mapped_column(default=False, server_default=false(), nullable=False)
