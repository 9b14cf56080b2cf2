"""Shared test fixtures for the dealgate test suite."""

import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import dealgate.models  # noqa: F401
from dealgate.core.database import Base
from dealgate.models.core import Listing, Transaction, User
from dealgate.models.dataroom import DataRoom, DataRoomMembership
from dealgate.models.enums import DataRoomRole, UserRole
from dealgate.modules.audit.service import AuditRecorder
from dealgate.schemas.auth import CurrentUser

# ── Test Data ────────────────────────────────────────────────────────────────

SELLER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
BUYER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
OTHER_BUYER_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000004")
BROKER_ID = uuid.UUID("00000000-0000-0000-0000-000000000005")
EDITOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000006")
VIEWER_ID = uuid.UUID("00000000-0000-0000-0000-000000000007")
LISTING_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
ROOM_ID = uuid.UUID("00000000-0000-0000-0000-000000000020")

_USERS = [
    (SELLER_ID, "seller@example.com", "Sally Seller", UserRole.SELLER),
    (BUYER_ID, "buyer@example.com", "Bob Buyer", UserRole.BUYER),
    (OTHER_BUYER_ID, "other@example.com", "Olga Other", UserRole.BUYER),
    (ADMIN_ID, "admin@example.com", "Ada Admin", UserRole.ADMIN),
    (BROKER_ID, "broker@example.com", "Bert Broker", UserRole.BROKER),
    (EDITOR_ID, "editor@example.com", "Eddie Editor", UserRole.SELLER),
    (VIEWER_ID, "viewer@example.com", "Vera Viewer", UserRole.BUYER),
]


def current_user(user_id: uuid.UUID) -> CurrentUser:
    for uid, email, _, role in _USERS:
        if uid == user_id:
            return CurrentUser(user_id=uid, role=role, email=email)
    raise KeyError(user_id)


SELLER = current_user(SELLER_ID)
BUYER = current_user(BUYER_ID)
OTHER_BUYER = current_user(OTHER_BUYER_ID)
ADMIN = current_user(ADMIN_ID)
BROKER = current_user(BROKER_ID)
EDITOR = current_user(EDITOR_ID)
VIEWER = current_user(VIEWER_ID)


@dataclass
class World:
    listing: Listing
    room: DataRoom


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    """Per-test SQLite file DB so the partial unique index and CAS update run for real."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit(session_factory) -> AuditRecorder:
    return AuditRecorder(session_factory)


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock(spec=["notify", "send_email"])


@pytest.fixture
def storage() -> MagicMock:
    mock = MagicMock(spec=["presign_upload", "presign_download", "watermark_url", "ttl_seconds"])
    mock.presign_upload.return_value = "https://s3.test/upload"
    mock.presign_download.return_value = "https://s3.test/download"
    mock.watermark_url.return_value = None
    mock.ttl_seconds = 300
    return mock


@pytest.fixture
async def world(session_factory) -> World:
    """Users, one listing owned by the seller, its data room with an EDITOR and a VIEWER."""
    async with session_factory() as session:
        for uid, email, name, role in _USERS:
            session.add(User(id=uid, email=email, full_name=name, role=role))
        listing = Listing(
            id=LISTING_ID,
            user_id=SELLER_ID,
            anonymous_title="Profitable SaaS company",
            company_name="Acme AB",
        )
        room = DataRoom(id=ROOM_ID, listing_id=LISTING_ID, name="Acme data room")
        session.add_all([listing, room])
        await session.flush()
        session.add_all([
            DataRoomMembership(data_room_id=ROOM_ID, user_id=EDITOR_ID, role=DataRoomRole.EDITOR),
            DataRoomMembership(data_room_id=ROOM_ID, user_id=VIEWER_ID, role=DataRoomRole.VIEWER),
        ])
        await session.commit()
    return World(listing=listing, room=room)


async def add_transaction(session_factory, buyer_id: uuid.UUID) -> None:
    async with session_factory() as session:
        session.add(Transaction(listing_id=LISTING_ID, buyer_id=buyer_id, seller_id=SELLER_ID))
        await session.commit()
