"""Data room Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from dealgate.models.dataroom import DataRoomDocument
from dealgate.models.enums import DataRoomRole, DocumentVisibility, InviteStatus, ScanStatus
from dealgate.modules.dataroom.visibility import AccessDecision, DocumentPolicy


class PolicyIn(BaseModel):
    visibility: DocumentVisibility
    download_blocked: bool = False
    watermark_required: bool = False
    grants: list[str] = Field(default_factory=list)

    def to_policy(self) -> DocumentPolicy:
        return DocumentPolicy(
            visibility=self.visibility,
            download_blocked=self.download_blocked,
            watermark_required=self.watermark_required,
            grants=frozenset(self.grants),
        )


class RoomCreate(BaseModel):
    listing_id: uuid.UUID
    name: str | None = Field(default=None, max_length=255)


class RoomSettingsUpdate(BaseModel):
    download_enabled: bool | None = None
    watermark_downloads: bool | None = None


class MemberSet(BaseModel):
    user_id: uuid.UUID
    role: DataRoomRole = DataRoomRole.VIEWER


class InviteCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    role: DataRoomRole = DataRoomRole.VIEWER
    message: str | None = Field(default=None, max_length=2000)


class InviteAccept(BaseModel):
    token: str = Field(min_length=1, max_length=64)


class ScanResultIn(BaseModel):
    status: ScanStatus
    reason: str | None = Field(default=None, max_length=1000)


class DocumentCreate(BaseModel):
    file_name: str = Field(min_length=1, max_length=500)
    mime_type: str = Field(min_length=1, max_length=255)
    size_bytes: int | None = Field(default=None, ge=0)
    policy: PolicyIn | None = None


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    listing_id: uuid.UUID
    name: str
    download_enabled: bool
    watermark_downloads: bool
    created_at: datetime


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    data_room_id: uuid.UUID
    user_id: uuid.UUID
    role: DataRoomRole


class AccessDecisionResponse(BaseModel):
    can_view: bool
    can_download: bool
    requires_watermark: bool
    reason: str

    @classmethod
    def from_decision(cls, decision: AccessDecision) -> "AccessDecisionResponse":
        return cls(**decision.to_dict())


class DocumentResponse(BaseModel):
    id: uuid.UUID
    data_room_id: uuid.UUID
    file_name: str
    mime_type: str
    size_bytes: int | None
    visibility: DocumentVisibility
    download_blocked: bool
    watermark_required: bool
    grants: list[str]
    scan_status: ScanStatus
    uploaded_by: uuid.UUID | None
    created_at: datetime
    access: AccessDecisionResponse | None = None

    @classmethod
    def from_document(
        cls, doc: DataRoomDocument, decision: AccessDecision | None = None
    ) -> "DocumentResponse":
        return cls(
            id=doc.id,
            data_room_id=doc.data_room_id,
            file_name=doc.file_name,
            mime_type=doc.mime_type,
            size_bytes=doc.size_bytes,
            visibility=doc.visibility,
            download_blocked=doc.download_blocked,
            watermark_required=doc.watermark_required,
            grants=sorted(g.email for g in doc.grants),
            scan_status=doc.scan_status,
            uploaded_by=doc.uploaded_by,
            created_at=doc.created_at,
            access=AccessDecisionResponse.from_decision(decision) if decision else None,
        )


class DocumentUploadResponse(BaseModel):
    document: DocumentResponse
    upload_url: str


class AccessUrlResponse(BaseModel):
    url: str
    expires_in: int
    watermarked: bool
    access: AccessDecisionResponse


class InviteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    data_room_id: uuid.UUID
    email: str
    role: DataRoomRole
    status: InviteStatus
    invited_by: uuid.UUID | None
    created_at: datetime
    expires_at: datetime
    accepted_at: datetime | None


class InviteAcceptResponse(BaseModel):
    data_room_id: uuid.UUID
    role: DataRoomRole
