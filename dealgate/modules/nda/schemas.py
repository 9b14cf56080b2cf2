"""NDA request Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dealgate.models.enums import NDAStatus


class NDACreate(BaseModel):
    listing_id: uuid.UUID
    message: str | None = Field(default=None, max_length=5000)
    buyer_profile: dict[str, Any] | None = None


class NDAStatusUpdate(BaseModel):
    # Unknown status strings fail validation (422)
    status: NDAStatus
    rejection_reason: str | None = Field(default=None, max_length=2000)


class NDAResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    listing_id: uuid.UUID
    buyer_id: uuid.UUID
    seller_id: uuid.UUID
    status: NDAStatus
    message: str | None
    buyer_profile: dict[str, Any] | None
    rejection_reason: str | None
    submitted_at: datetime
    expires_at: datetime
    approved_at: datetime | None
    rejected_at: datetime | None
    signed_at: datetime | None
    viewed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class NDAListResponse(BaseModel):
    items: list[NDAResponse]
    total: int
