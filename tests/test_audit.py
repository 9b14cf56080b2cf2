"""Tests for the audit recorder and the audit query."""

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from dealgate.models.audit import AuditLogEntry
from dealgate.models.enums import AuditAction
from dealgate.modules.audit.service import AuditRecorder, list_entries
from tests.conftest import BUYER, BUYER_ID, ROOM_ID, SELLER

pytestmark = pytest.mark.anyio


class TestAuditRecorder:
    async def test_record_appends_entry(self, engine, audit, db):
        target = uuid.uuid4()
        entry = await audit.record(
            AuditAction.VIEW,
            BUYER,
            target_type="document",
            target_id=target,
            data_room_id=ROOM_ID,
            meta={"granted": False, "target": target},
        )

        assert entry is not None
        stored = (await db.execute(select(AuditLogEntry))).scalar_one()
        assert stored.actor_id == BUYER_ID
        assert stored.actor_email == "buyer@example.com"
        assert stored.meta == {"granted": False, "target": str(target)}

    async def test_system_actor(self, engine, audit, db):
        await audit.record(AuditAction.NDA_DELETED, None, target_type="nda_request", target_id=None)
        stored = (await db.execute(select(AuditLogEntry))).scalar_one()
        assert stored.actor_id is None
        assert stored.meta is None

    async def test_write_failure_is_swallowed(self):
        def broken_factory():
            raise RuntimeError("database unavailable")

        recorder = AuditRecorder(broken_factory)
        with patch("dealgate.core.errors.sentry_sdk.capture_exception") as capture:
            result = await recorder.record(
                AuditAction.DOWNLOAD, BUYER, target_type="document", target_id=uuid.uuid4()
            )
        assert result is None
        capture.assert_called_once()


class TestListEntries:
    async def _seed(self, audit):
        other_room = uuid.uuid4()
        await audit.record(AuditAction.UPLOAD, SELLER, "document", uuid.uuid4(), data_room_id=ROOM_ID)
        await audit.record(AuditAction.VIEW, BUYER, "document", uuid.uuid4(), data_room_id=ROOM_ID)
        await audit.record(AuditAction.DOWNLOAD, BUYER, "document", uuid.uuid4(), data_room_id=ROOM_ID)
        await audit.record(AuditAction.VIEW, BUYER, "document", uuid.uuid4(), data_room_id=other_room)

    async def test_newest_first_scoped_to_room(self, engine, audit, db):
        await self._seed(audit)
        entries, total = await list_entries(db, ROOM_ID)
        assert total == 3
        assert [e.action for e in entries] == [AuditAction.DOWNLOAD, AuditAction.VIEW, AuditAction.UPLOAD]

    async def test_filters(self, engine, audit, db):
        await self._seed(audit)
        views, total = await list_entries(db, ROOM_ID, action=AuditAction.VIEW)
        assert total == 1 and views[0].action == AuditAction.VIEW

        by_buyer, total = await list_entries(db, ROOM_ID, actor_id=BUYER_ID)
        assert total == 2

    async def test_pagination_reports_full_total(self, engine, audit, db):
        await self._seed(audit)
        page, total = await list_entries(db, ROOM_ID, limit=1, offset=1)
        assert total == 3
        assert [e.action for e in page] == [AuditAction.VIEW]

    async def test_entries_are_only_inserted(self, engine, audit, db):
        await self._seed(audit)
        await list_entries(db, ROOM_ID)
        assert (await db.execute(select(func.count()).select_from(AuditLogEntry))).scalar_one() == 4
