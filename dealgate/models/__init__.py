"""SQLAlchemy models package. Import all models so Base.metadata is populated."""

from dealgate.models.audit import AuditLogEntry
from dealgate.models.base import BaseModel, ModelMixin, TimestampedModel
from dealgate.models.core import Listing, Message, Notification, Transaction, User
from dealgate.models.dataroom import (
    DataRoom,
    DataRoomDocument,
    DataRoomInvite,
    DataRoomMembership,
    DocumentGrant,
)
from dealgate.models.nda import NDARequest
from dealgate.models.readiness import ReadinessDocument

__all__ = [
    "AuditLogEntry",
    "BaseModel",
    "DataRoom",
    "DataRoomDocument",
    "DataRoomInvite",
    "DataRoomMembership",
    "DocumentGrant",
    "Listing",
    "Message",
    "ModelMixin",
    "NDARequest",
    "Notification",
    "ReadinessDocument",
    "TimestampedModel",
    "Transaction",
    "User",
]
