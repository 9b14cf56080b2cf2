"""Tests for access tokens and role checks."""

import uuid
from datetime import timedelta

import pytest
from jose import jwt

from dealgate.auth.dependencies import require_role
from dealgate.auth.tokens import create_access_token, decode_access_token
from dealgate.core.config import settings
from dealgate.core.errors import ForbiddenError, UnauthenticatedError
from dealgate.models.enums import PRIVILEGED_ROLES, NDAStatus, UserRole
from dealgate.models.nda import NDARequest
from dealgate.modules.nda.authorization import NDAOperation, is_allowed, operation_for_target
from tests.conftest import ADMIN, BROKER, BUYER, BUYER_ID, OTHER_BUYER, SELLER, SELLER_ID


class TestTokens:
    def test_round_trip_subject(self):
        user_id = uuid.uuid4()
        assert decode_access_token(create_access_token(user_id))["sub"] == str(user_id)

    def test_expired(self):
        token = create_access_token(uuid.uuid4(), expires_in=timedelta(seconds=-5))
        with pytest.raises(UnauthenticatedError):
            decode_access_token(token)

    def test_wrong_key(self):
        token = jwt.encode({"sub": str(uuid.uuid4())}, "other-key", algorithm=settings.JWT_ALGORITHM)
        with pytest.raises(UnauthenticatedError):
            decode_access_token(token)


class TestRequireRole:
    @pytest.mark.anyio
    async def test_allowed(self):
        check = require_role(list(PRIVILEGED_ROLES))
        assert await check(current_user=BROKER) is BROKER

    @pytest.mark.anyio
    async def test_denied(self):
        check = require_role([UserRole.ADMIN])
        with pytest.raises(ForbiddenError):
            await check(current_user=SELLER)


class TestNDAAuthorization:
    nda = NDARequest(id=uuid.uuid4(), buyer_id=BUYER_ID, seller_id=SELLER_ID, status=NDAStatus.PENDING)

    @pytest.mark.parametrize(
        "actor,operation,expected",
        [
            (BUYER, NDAOperation.VIEW, True),
            (OTHER_BUYER, NDAOperation.VIEW, False),
            (BROKER, NDAOperation.VIEW, True),
            (SELLER, NDAOperation.APPROVE, True),
            (BUYER, NDAOperation.APPROVE, False),
            (BROKER, NDAOperation.REJECT, True),
            (BUYER, NDAOperation.SIGN, True),
            (SELLER, NDAOperation.SIGN, False),
            (SELLER, NDAOperation.DELETE, True),
            (BROKER, NDAOperation.DELETE, False),
            (ADMIN, NDAOperation.DELETE, True),
        ],
    )
    def test_matrix(self, actor, operation, expected):
        assert is_allowed(actor, self.nda, operation) is expected

    def test_pending_is_not_a_target(self):
        with pytest.raises(ForbiddenError):
            operation_for_target(NDAStatus.PENDING)
        assert operation_for_target(NDAStatus.SIGNED) == NDAOperation.SIGN
