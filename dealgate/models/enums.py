import enum


# ── Users ──────────────────────────────────────────────────────────────────────


class UserRole(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"
    BROKER = "broker"
    ADMIN = "admin"


PRIVILEGED_ROLES = frozenset({UserRole.ADMIN, UserRole.BROKER})


class NotificationType(str, enum.Enum):
    NDA = "nda"
    DATAROOM = "dataroom"
    SYSTEM = "system"


# ── NDA ────────────────────────────────────────────────────────────────────────


class NDAStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SIGNED = "signed"


ACTIVE_NDA_STATUSES = frozenset({NDAStatus.PENDING, NDAStatus.APPROVED})
ACCESS_GRANTING_NDA_STATUSES = frozenset({NDAStatus.APPROVED, NDAStatus.SIGNED})


# ── Data room ──────────────────────────────────────────────────────────────────


class DataRoomRole(str, enum.Enum):
    OWNER = "OWNER"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


MANAGER_ROOM_ROLES = frozenset({DataRoomRole.OWNER, DataRoomRole.EDITOR})


class DocumentVisibility(str, enum.Enum):
    ALL = "ALL"
    OWNER_ONLY = "OWNER_ONLY"
    NDA_ONLY = "NDA_ONLY"
    TRANSACTION_ONLY = "TRANSACTION_ONLY"
    CUSTOM = "CUSTOM"


class ScanStatus(str, enum.Enum):
    PENDING = "pending"
    CLEAN = "clean"
    BLOCKED = "blocked"


class InviteStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


OPEN_INVITE_STATUSES = frozenset({InviteStatus.PENDING, InviteStatus.ACCEPTED})


class AccessAction(str, enum.Enum):
    VIEW = "view"
    DOWNLOAD = "download"


# ── Readiness ──────────────────────────────────────────────────────────────────


class RequirementCategory(str, enum.Enum):
    FINANS = "finans"
    SKATT = "skatt"
    JURIDIK = "juridik"
    HR = "hr"
    KOMMERSIELLT = "kommersiellt"
    IT = "it"
    OPERATION = "operation"


class ReadinessStatus(str, enum.Enum):
    MISSING = "missing"
    INCOMPLETE = "incomplete"
    UPLOADED = "uploaded"
    VERIFIED = "verified"


SATISFIED_READINESS_STATUSES = frozenset({ReadinessStatus.UPLOADED, ReadinessStatus.VERIFIED})


# ── Audit ──────────────────────────────────────────────────────────────────────


class AuditAction(str, enum.Enum):
    VIEW = "view"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    DELETE = "delete"
    POLICY_CHANGE = "policy_change"
    VIRUS_SCAN = "virus_scan"
    INVITE_SENT = "invite_sent"
    INVITE_ACCEPTED = "invite_accepted"
    NDA_REQUESTED = "nda_requested"
    NDA_APPROVED = "nda_approved"
    NDA_REJECTED = "nda_rejected"
    NDA_SIGNED = "nda_signed"
    NDA_DELETED = "nda_deleted"
    READINESS_UPLOAD = "readiness_upload"
    READINESS_DELETE = "readiness_delete"
    READINESS_ANALYSIS = "readiness_analysis"
