import uuid
from typing import Any

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dealgate.models.base import JSONType, TimestampedModel
from dealgate.models.enums import AuditAction


class AuditLogEntry(TimestampedModel):
    """Immutable audit log. Rows are only ever inserted."""

    __tablename__ = "audit_log_entries"
    __table_args__ = (
        Index("ix_audit_log_entries_data_room_created", "data_room_id", "created_at"),
        Index("ix_audit_log_entries_action", "action"),
        Index("ix_audit_log_entries_target", "target_type", "target_id"),
    )

    # No FKs: entries must outlive hard-deleted targets
    data_room_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    actor_email: Mapped[str | None] = mapped_column(String(320))
    action: Mapped[AuditAction] = mapped_column(nullable=False)
    target_type: Mapped[str | None] = mapped_column(String(50))
    target_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
