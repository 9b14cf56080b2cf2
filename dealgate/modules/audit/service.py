"""Audit recorder: append-only log of access decisions and document lifecycle events.

Writes go through their own session so an audit entry never shares (or breaks)
the unit of work of the operation that triggered it.
"""

import uuid
from collections.abc import Callable
from typing import Any

import structlog
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.core.errors import report_best_effort_failure
from dealgate.models.audit import AuditLogEntry
from dealgate.models.enums import AuditAction
from dealgate.schemas.auth import CurrentUser

logger = structlog.get_logger()


class AuditRecorder:
    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        action: AuditAction,
        actor: CurrentUser | None,
        target_type: str,
        target_id: uuid.UUID | None,
        data_room_id: uuid.UUID | None = None,
        meta: dict[str, Any] | None = None,
    ) -> AuditLogEntry | None:
        """Append one entry. Failures are reported, never raised."""
        try:
            async with self._session_factory() as session:
                entry = AuditLogEntry(
                    action=action,
                    actor_id=actor.user_id if actor else None,
                    actor_email=actor.email if actor else None,
                    target_type=target_type,
                    target_id=target_id,
                    data_room_id=data_room_id,
                    meta=jsonable_encoder(meta) if meta else None,
                )
                session.add(entry)
                await session.commit()
                return entry
        except Exception as e:
            report_best_effort_failure(
                "audit_log_write_failed",
                e,
                action=action.value,
                target_type=target_type,
                target_id=str(target_id) if target_id else None,
            )
            return None


async def list_entries(
    db: AsyncSession,
    data_room_id: uuid.UUID,
    action: AuditAction | None = None,
    actor_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditLogEntry], int]:
    """Entries for one data room, newest first, with the unpaginated total."""
    filters = [AuditLogEntry.data_room_id == data_room_id]
    if action is not None:
        filters.append(AuditLogEntry.action == action)
    if actor_id is not None:
        filters.append(AuditLogEntry.actor_id == actor_id)

    total = (
        await db.execute(select(func.count()).select_from(AuditLogEntry).where(*filters))
    ).scalar_one()

    result = await db.execute(
        select(AuditLogEntry)
        .where(*filters)
        .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


def get_audit_recorder() -> AuditRecorder:
    from dealgate.core.database import async_session_factory

    return AuditRecorder(async_session_factory)
