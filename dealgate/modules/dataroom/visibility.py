"""Document visibility resolver. Pure decision function, no I/O.

`resolve()` combines a document's effective policy with what is known about the
viewer (room role, NDA state, transaction, e-mail) and returns an AccessDecision.
The first matching rule wins; room managers are evaluated before the policy.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from dealgate.core.errors import ValidationError
from dealgate.models.base import as_utc
from dealgate.models.enums import (
    ACCESS_GRANTING_NDA_STATUSES,
    MANAGER_ROOM_ROLES,
    DataRoomRole,
    DocumentVisibility,
    NDAStatus,
)


@dataclass(frozen=True)
class DocumentPolicy:
    visibility: DocumentVisibility
    download_blocked: bool = False
    watermark_required: bool = False
    grants: frozenset[str] = field(default_factory=frozenset)

    def with_room_settings(self, download_enabled: bool, watermark_downloads: bool) -> DocumentPolicy:
        """Fold room-wide settings in. They can only tighten the policy."""
        return replace(
            self,
            download_blocked=self.download_blocked or not download_enabled,
            watermark_required=self.watermark_required or watermark_downloads,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "visibility": self.visibility.value,
            "download_blocked": self.download_blocked,
            "watermark_required": self.watermark_required,
            "grants": sorted(self.grants),
        }


@dataclass(frozen=True)
class ViewerContext:
    now: datetime
    room_role: DataRoomRole | None = None
    nda_status: NDAStatus | None = None
    nda_expires_at: datetime | None = None
    has_transaction: bool = False
    email: str | None = None

    @property
    def has_valid_nda(self) -> bool:
        if self.nda_status not in ACCESS_GRANTING_NDA_STATUSES:
            return False
        if self.nda_expires_at is None:
            return True
        return as_utc(self.now) <= as_utc(self.nda_expires_at)


@dataclass(frozen=True)
class AccessDecision:
    can_view: bool
    can_download: bool
    requires_watermark: bool
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_view": self.can_view,
            "can_download": self.can_download,
            "requires_watermark": self.requires_watermark,
            "reason": self.reason,
        }


def normalize_grants(emails: Iterable[str] | None) -> frozenset[str]:
    """Trim, lower-case and de-duplicate grant e-mails; blanks are dropped."""
    if not emails:
        return frozenset()
    return frozenset(e.strip().lower() for e in emails if e and e.strip())


def ensure_valid_policy(policy: DocumentPolicy) -> None:
    """Mutation guard: a CUSTOM policy nobody can see is rejected."""
    if policy.visibility == DocumentVisibility.CUSTOM and not policy.grants:
        raise ValidationError(
            "CUSTOM visibility requires at least one grant",
            detail={"field": "grants"},
        )


def _can_view(policy: DocumentPolicy, viewer: ViewerContext) -> tuple[bool, str]:
    if viewer.room_role in MANAGER_ROOM_ROLES:
        return True, "room_manager"

    visibility = policy.visibility
    if visibility == DocumentVisibility.OWNER_ONLY:
        return False, "owner_only"
    if visibility == DocumentVisibility.ALL:
        return True, "all"
    if visibility == DocumentVisibility.NDA_ONLY:
        if viewer.has_valid_nda:
            return True, "nda_valid"
        if viewer.nda_status in ACCESS_GRANTING_NDA_STATUSES:
            return False, "nda_expired"
        return False, "nda_required"
    if visibility == DocumentVisibility.TRANSACTION_ONLY:
        return (True, "transaction") if viewer.has_transaction else (False, "transaction_required")
    if visibility == DocumentVisibility.CUSTOM:
        email = (viewer.email or "").strip().lower()
        granted = bool(email) and email in policy.grants
        return (True, "grant") if granted else (False, "not_granted")

    raise ValueError(f"Unhandled document visibility: {visibility!r}")


def resolve(policy: DocumentPolicy, viewer: ViewerContext) -> AccessDecision:
    can_view, reason = _can_view(policy, viewer)
    return AccessDecision(
        can_view=can_view,
        can_download=can_view and not policy.download_blocked,
        requires_watermark=can_view and policy.watermark_required,
        reason=reason,
    )
