"""Data room models: rooms, memberships, invitations, documents and their grants."""

import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    text,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealgate.models.base import BaseModel, TimestampedModel
from dealgate.models.enums import (
    OPEN_INVITE_STATUSES,
    DataRoomRole,
    DocumentVisibility,
    InviteStatus,
    ScanStatus,
)

_OPEN_INVITE_SQL = "status IN ({})".format(
    ", ".join(f"'{s.name}'" for s in sorted(OPEN_INVITE_STATUSES, key=lambda s: s.name))
)


class DataRoom(BaseModel):
    """Container of documents and memberships for one listing's sale process."""

    __tablename__ = "data_rooms"
    __table_args__ = (
        Index("ix_data_rooms_listing_id", "listing_id", unique=True),
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Room-wide security settings, applied on top of each document's policy
    download_enabled: Mapped[bool] = mapped_column(
        default=True, server_default=true(), nullable=False
    )
    watermark_downloads: Mapped[bool] = mapped_column(
        default=False, server_default=false(), nullable=False
    )


class DataRoomMembership(BaseModel):
    __tablename__ = "data_room_memberships"
    __table_args__ = (
        UniqueConstraint("data_room_id", "user_id", name="uq_data_room_membership"),
    )

    data_room_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("data_rooms.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[DataRoomRole] = mapped_column(nullable=False, default=DataRoomRole.VIEWER)


class DataRoomInvite(BaseModel):
    """E-mail invitation to join a data room; accepting it creates the membership."""

    __tablename__ = "data_room_invites"
    __table_args__ = (
        Index("ix_data_room_invites_token", "token", unique=True),
        Index("ix_data_room_invites_data_room_id", "data_room_id"),
        Index(
            "uq_data_room_invites_open_email",
            "data_room_id",
            "email",
            unique=True,
            postgresql_where=text(_OPEN_INVITE_SQL),
            sqlite_where=text(_OPEN_INVITE_SQL),
        ),
    )

    data_room_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("data_rooms.id", ondelete="CASCADE"), nullable=False
    )
    # Stored lower-cased
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[DataRoomRole] = mapped_column(nullable=False, default=DataRoomRole.VIEWER)
    token: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str | None] = mapped_column(Text)
    invited_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[InviteStatus] = mapped_column(nullable=False, default=InviteStatus.PENDING)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<DataRoomInvite(id={self.id}, email={self.email!r}, status={self.status.value})>"


class DataRoomDocument(BaseModel):
    """A document in a data room together with its access policy."""

    __tablename__ = "data_room_documents"
    __table_args__ = (
        Index("ix_data_room_documents_data_room_id", "data_room_id"),
    )

    data_room_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("data_rooms.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int | None] = mapped_column(Integer)
    storage_key: Mapped[str] = mapped_column(String(1000), nullable=False)
    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )

    # Policy
    visibility: Mapped[DocumentVisibility] = mapped_column(
        nullable=False, default=DocumentVisibility.NDA_ONLY
    )
    download_blocked: Mapped[bool] = mapped_column(
        default=False, server_default=false(), nullable=False
    )
    watermark_required: Mapped[bool] = mapped_column(
        default=False, server_default=false(), nullable=False
    )
    # Set by the virus scanner callback; only CLEAN files are served
    scan_status: Mapped[ScanStatus] = mapped_column(nullable=False, default=ScanStatus.CLEAN)

    grants: Mapped[list["DocumentGrant"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DocumentGrant.email",
    )

    def __repr__(self) -> str:
        return f"<DataRoomDocument(id={self.id}, file_name={self.file_name!r})>"


class DocumentGrant(TimestampedModel):
    """E-mail based exception under a CUSTOM visibility policy."""

    __tablename__ = "data_room_document_grants"
    __table_args__ = (
        UniqueConstraint("document_id", "email", name="uq_document_grant_email"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("data_room_documents.id", ondelete="CASCADE"), nullable=False
    )
    # Stored lower-cased
    email: Mapped[str] = mapped_column(String(320), nullable=False)

    document: Mapped["DataRoomDocument"] = relationship(back_populates="grants")
