"""NDA lifecycle service: create, query, transition and delete NDA requests.

State changes commit first; notifications, e-mail, the first-contact message and
audit entries run afterwards and never undo a committed change.
"""

import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.core.config import settings
from dealgate.core.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    report_best_effort_failure,
)
from dealgate.models.base import utcnow
from dealgate.models.core import Listing, Message, User
from dealgate.models.enums import (
    ACCESS_GRANTING_NDA_STATUSES,
    AuditAction,
    NDAStatus,
    NotificationType,
)
from dealgate.models.nda import NDARequest
from dealgate.modules.audit.service import AuditRecorder
from dealgate.modules.nda.authorization import (
    TRANSITIONS,
    NDAOperation,
    authorize,
    operation_for_target,
)
from dealgate.modules.notifications.service import Notifier
from dealgate.schemas.auth import CurrentUser

logger = structlog.get_logger()

FIRST_CONTACT_SUBJECT = "Your NDA request has been approved"
FIRST_CONTACT_CONTENT = (
    "Hi! Your NDA request has been approved. You can now see all information about "
    "the company and we can start discussing the opportunity. Don't hesitate to "
    "contact me if you have any questions."
)

_TRANSITION_AUDIT = {
    NDAStatus.APPROVED: AuditAction.NDA_APPROVED,
    NDAStatus.REJECTED: AuditAction.NDA_REJECTED,
    NDAStatus.SIGNED: AuditAction.NDA_SIGNED,
}


# ── Helpers ──────────────────────────────────────────────────────────────────


def _best_effort(event: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    try:
        func(*args, **kwargs)
    except Exception as e:
        report_best_effort_failure(event, e)


def _nda_link(nda_id: uuid.UUID) -> str:
    return f"{settings.FRONTEND_URL}/nda/{nda_id}"


def _display_name(user: User | None, fallback: str) -> str:
    if user is None:
        return fallback
    return user.full_name or user.email or fallback


async def _get_nda_or_raise(db: AsyncSession, nda_id: uuid.UUID) -> NDARequest:
    nda = await db.get(NDARequest, nda_id)
    if nda is None:
        raise NotFoundError("NDA request not found", detail={"nda_id": str(nda_id)})
    return nda


# ── Create ───────────────────────────────────────────────────────────────────


async def create_request(
    db: AsyncSession,
    actor: CurrentUser,
    listing_id: uuid.UUID,
    notifier: Notifier,
    audit: AuditRecorder,
    message: str | None = None,
    buyer_profile: dict[str, Any] | None = None,
) -> NDARequest:
    """Create a pending request for the caller. The seller is the listing owner."""
    listing = await db.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError("Listing not found", detail={"listing_id": str(listing_id)})
    if listing.user_id == actor.user_id:
        raise InvalidOperationError("You cannot request an NDA for your own listing")

    buyer = await db.get(User, actor.user_id)
    if buyer_profile is None and buyer is not None:
        buyer_profile = {
            "name": buyer.full_name,
            "email": buyer.email,
            "company_name": buyer.company_name,
        }

    now = utcnow()
    nda = NDARequest(
        listing_id=listing.id,
        buyer_id=actor.user_id,
        seller_id=listing.user_id,
        status=NDAStatus.PENDING,
        message=message or None,
        buyer_profile=buyer_profile,
        submitted_at=now,
        expires_at=now + timedelta(days=settings.NDA_VALIDITY_DAYS),
    )
    db.add(nda)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(
            "An active NDA request already exists for this listing",
            detail={"listing_id": str(listing_id)},
        ) from e
    await db.refresh(nda)

    logger.info(
        "nda.created",
        nda_id=str(nda.id),
        listing_id=str(listing.id),
        buyer_id=str(actor.user_id),
    )

    seller = await db.get(User, listing.user_id)
    buyer_name = _display_name(buyer, "A buyer")
    _best_effort(
        "nda_notification_failed",
        notifier.notify,
        nda.seller_id,
        NotificationType.NDA,
        "New NDA request",
        f"{buyer_name} wants to sign an NDA for {listing.display_title}.",
        _nda_link(nda.id),
    )
    if seller is not None:
        _best_effort(
            "nda_email_failed",
            notifier.send_email,
            seller.email,
            "nda_requested",
            {
                "seller_name": _display_name(seller, "Seller"),
                "buyer_name": buyer_name,
                "listing_title": listing.display_title,
                "link": _nda_link(nda.id),
            },
        )
    await audit.record(
        AuditAction.NDA_REQUESTED,
        actor,
        target_type="nda_request",
        target_id=nda.id,
        meta={"listing_id": str(listing.id)},
    )
    return nda


# ── Query ────────────────────────────────────────────────────────────────────


async def get_request(db: AsyncSession, nda_id: uuid.UUID, actor: CurrentUser) -> NDARequest:
    nda = await _get_nda_or_raise(db, nda_id)
    authorize(actor, nda, NDAOperation.VIEW)
    return nda


async def list_requests(
    db: AsyncSession,
    actor: CurrentUser,
    listing_id: uuid.UUID | None = None,
    status: NDAStatus | None = None,
) -> list[NDARequest]:
    """Requests visible to the caller, newest first. Privileged roles see all."""
    stmt = select(NDARequest)
    if listing_id is not None:
        stmt = stmt.where(NDARequest.listing_id == listing_id)
    if status is not None:
        stmt = stmt.where(NDARequest.status == status)
    if not actor.is_privileged:
        stmt = stmt.where(
            or_(NDARequest.buyer_id == actor.user_id, NDARequest.seller_id == actor.user_id)
        )
    result = await db.execute(stmt.order_by(NDARequest.created_at.desc(), NDARequest.id))
    return list(result.scalars().all())


async def find_access_nda(
    db: AsyncSession, listing_id: uuid.UUID, buyer_id: uuid.UUID
) -> NDARequest | None:
    """The access-granting (approved/signed) request that stays valid the longest."""
    result = await db.execute(
        select(NDARequest)
        .where(
            NDARequest.listing_id == listing_id,
            NDARequest.buyer_id == buyer_id,
            NDARequest.status.in_(ACCESS_GRANTING_NDA_STATUSES),
        )
        .order_by(NDARequest.expires_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# ── Transition ───────────────────────────────────────────────────────────────


async def transition(
    db: AsyncSession,
    nda_id: uuid.UUID,
    actor: CurrentUser,
    target: NDAStatus,
    notifier: Notifier,
    audit: AuditRecorder,
    rejection_reason: str | None = None,
) -> NDARequest:
    """
    Move a request along the state machine.

    Authorization is checked before state: a caller without the right role gets
    Forbidden even if the transition is also illegal. The write is a
    compare-and-swap on the status that was read, so of two concurrent callers
    only one succeeds and the other gets Conflict.
    """
    nda = await _get_nda_or_raise(db, nda_id)
    authorize(actor, nda, operation_for_target(target))

    expected = nda.status
    if expected not in TRANSITIONS[target]:
        raise ConflictError(
            f"Cannot move an NDA request from '{expected.value}' to '{target.value}'",
            detail={"status": expected.value, "target": target.value},
        )

    now = utcnow()
    values: dict[str, Any] = {"status": target, "updated_at": now}
    if target == NDAStatus.APPROVED:
        values.update(approved_at=now, viewed_at=now)
    elif target == NDAStatus.REJECTED:
        values.update(rejected_at=now, viewed_at=now, rejection_reason=rejection_reason or None)
    elif target == NDAStatus.SIGNED:
        values.update(signed_at=now)

    result = await db.execute(
        update(NDARequest)
        .where(NDARequest.id == nda.id, NDARequest.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise ConflictError(
            "NDA request was modified concurrently",
            detail={"nda_id": str(nda_id), "expected": expected.value},
        )
    await db.commit()
    await db.refresh(nda)

    logger.info(
        "nda.transitioned",
        nda_id=str(nda.id),
        from_status=expected.value,
        to_status=target.value,
        actor_id=str(actor.user_id),
    )

    await _after_transition(db, nda, notifier)
    await audit.record(
        _TRANSITION_AUDIT[target],
        actor,
        target_type="nda_request",
        target_id=nda.id,
        meta={"listing_id": str(nda.listing_id), "from": expected.value, "to": target.value},
    )
    return nda


async def _after_transition(db: AsyncSession, nda: NDARequest, notifier: Notifier) -> None:
    listing = await db.get(Listing, nda.listing_id)
    buyer = await db.get(User, nda.buyer_id)
    # Plain values: a failed first-contact insert rolls back and expires the ORM rows
    status = nda.status
    buyer_id, seller_id = nda.buyer_id, nda.seller_id
    title = listing.display_title if listing else "the listing"
    buyer_email = buyer.email if buyer else None
    buyer_name = _display_name(buyer, "Buyer")
    rejection_reason = nda.rejection_reason or ""
    link = _nda_link(nda.id)

    if status == NDAStatus.APPROVED:
        if not await _create_first_contact_message(db, nda):
            await db.refresh(nda)
        _best_effort(
            "nda_notification_failed",
            notifier.notify,
            buyer_id,
            NotificationType.NDA,
            "NDA approved",
            f"You can now see all information about {title}.",
            link,
        )
        if buyer_email:
            _best_effort(
                "nda_email_failed",
                notifier.send_email,
                buyer_email,
                "nda_approved",
                {"buyer_name": buyer_name, "listing_title": title, "link": link},
            )
    elif status == NDAStatus.REJECTED:
        _best_effort(
            "nda_notification_failed",
            notifier.notify,
            buyer_id,
            NotificationType.NDA,
            "NDA rejected",
            f"The seller of {title} declined your NDA request.",
            link,
        )
        if buyer_email:
            _best_effort(
                "nda_email_failed",
                notifier.send_email,
                buyer_email,
                "nda_rejected",
                {
                    "buyer_name": buyer_name,
                    "listing_title": title,
                    "rejection_reason": rejection_reason,
                },
            )
    elif status == NDAStatus.SIGNED:
        _best_effort(
            "nda_notification_failed",
            notifier.notify,
            seller_id,
            NotificationType.NDA,
            "NDA signed",
            f"{_display_name(buyer, 'The buyer')} has signed the NDA for {title}.",
            link,
        )


async def _create_first_contact_message(db: AsyncSession, nda: NDARequest) -> bool:
    try:
        db.add(
            Message(
                listing_id=nda.listing_id,
                sender_id=nda.seller_id,
                recipient_id=nda.buyer_id,
                subject=FIRST_CONTACT_SUBJECT,
                content=FIRST_CONTACT_CONTENT,
            )
        )
        await db.commit()
        return True
    except Exception as e:
        await db.rollback()
        report_best_effort_failure("nda_first_message_failed", e, nda_id=str(nda.id))
        return False


# ── Delete ───────────────────────────────────────────────────────────────────


async def delete_request(
    db: AsyncSession,
    nda_id: uuid.UUID,
    actor: CurrentUser,
    audit: AuditRecorder,
) -> None:
    """Hard delete. Participants or an admin only."""
    nda = await _get_nda_or_raise(db, nda_id)
    authorize(actor, nda, NDAOperation.DELETE)

    snapshot = {
        "listing_id": str(nda.listing_id),
        "buyer_id": str(nda.buyer_id),
        "seller_id": str(nda.seller_id),
        "status": nda.status.value,
    }
    await db.execute(delete(NDARequest).where(NDARequest.id == nda_id))
    await db.commit()

    logger.info("nda.deleted", nda_id=str(nda_id), actor_id=str(actor.user_id))
    await audit.record(
        AuditAction.NDA_DELETED,
        actor,
        target_type="nda_request",
        target_id=nda_id,
        meta=snapshot,
    )
