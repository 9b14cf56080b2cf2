"""NDA request model.

At most one request per (listing, buyer) may be PENDING or APPROVED; the partial
unique index enforces that at the storage layer.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from dealgate.models.base import BaseModel, JSONType
from dealgate.models.enums import ACTIVE_NDA_STATUSES, NDAStatus

# Status is stored by enum name
_ACTIVE_STATUS_SQL = "status IN ({})".format(
    ", ".join(f"'{s.name}'" for s in sorted(ACTIVE_NDA_STATUSES, key=lambda s: s.name))
)


class NDARequest(BaseModel):
    __tablename__ = "nda_requests"
    __table_args__ = (
        Index(
            "uq_nda_requests_active_listing_buyer",
            "listing_id",
            "buyer_id",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("ix_nda_requests_seller_id", "seller_id"),
        Index("ix_nda_requests_buyer_id", "buyer_id"),
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[NDAStatus] = mapped_column(nullable=False, default=NDAStatus.PENDING)
    message: Mapped[str | None] = mapped_column(Text)
    buyer_profile: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<NDARequest(id={self.id}, status={self.status.value})>"
