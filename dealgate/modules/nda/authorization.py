"""Single authorization point for every NDA entry point (get, list, transition, delete)."""

import enum

from dealgate.core.errors import ForbiddenError
from dealgate.models.enums import NDAStatus
from dealgate.models.nda import NDARequest
from dealgate.schemas.auth import CurrentUser


class NDAOperation(str, enum.Enum):
    VIEW = "view"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    SIGN = "sign"


# Legal state machine: target -> allowed source states
TRANSITIONS: dict[NDAStatus, frozenset[NDAStatus]] = {
    NDAStatus.APPROVED: frozenset({NDAStatus.PENDING}),
    NDAStatus.REJECTED: frozenset({NDAStatus.PENDING}),
    NDAStatus.SIGNED: frozenset({NDAStatus.APPROVED}),
}

TARGET_OPERATIONS: dict[NDAStatus, NDAOperation] = {
    NDAStatus.APPROVED: NDAOperation.APPROVE,
    NDAStatus.REJECTED: NDAOperation.REJECT,
    NDAStatus.SIGNED: NDAOperation.SIGN,
}


def is_participant(actor: CurrentUser, nda: NDARequest) -> bool:
    return actor.user_id in (nda.buyer_id, nda.seller_id)


def is_allowed(actor: CurrentUser, nda: NDARequest, operation: NDAOperation) -> bool:
    if operation == NDAOperation.VIEW:
        return actor.is_privileged or is_participant(actor, nda)
    if operation == NDAOperation.DELETE:
        return actor.is_admin or is_participant(actor, nda)
    if operation in (NDAOperation.APPROVE, NDAOperation.REJECT):
        return actor.is_privileged or actor.user_id == nda.seller_id
    if operation == NDAOperation.SIGN:
        return actor.is_privileged or actor.user_id == nda.buyer_id
    raise ValueError(f"Unhandled NDA operation: {operation!r}")


def authorize(actor: CurrentUser, nda: NDARequest, operation: NDAOperation) -> None:
    if not is_allowed(actor, nda, operation):
        raise ForbiddenError(
            f"Not allowed to {operation.value} this NDA request",
            detail={"nda_id": str(nda.id), "operation": operation.value},
        )


def operation_for_target(target: NDAStatus) -> NDAOperation:
    """Map a requested status to the operation it performs. PENDING is never a target."""
    try:
        return TARGET_OPERATIONS[target]
    except KeyError:
        raise ForbiddenError(
            f"Cannot move an NDA request to '{target.value}'",
            detail={"status": target.value},
        ) from None
