"""Tests for the pure document visibility resolver."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from dealgate.core.errors import ValidationError
from dealgate.models.enums import DataRoomRole, DocumentVisibility, NDAStatus
from dealgate.modules.dataroom.visibility import (
    DocumentPolicy,
    ViewerContext,
    ensure_valid_policy,
    normalize_grants,
    resolve,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _viewer(**kwargs) -> ViewerContext:
    return ViewerContext(now=NOW, **kwargs)


class TestRoomManagers:
    @pytest.mark.parametrize("role", [DataRoomRole.OWNER, DataRoomRole.EDITOR])
    def test_managers_see_owner_only_documents(self, role):
        decision = resolve(DocumentPolicy(DocumentVisibility.OWNER_ONLY), _viewer(room_role=role))
        assert decision.can_view is True
        assert decision.can_download is True
        assert decision.reason == "room_manager"

    def test_manager_still_bound_by_download_block_and_watermark(self):
        policy = DocumentPolicy(
            DocumentVisibility.NDA_ONLY, download_blocked=True, watermark_required=True
        )
        decision = resolve(policy, _viewer(room_role=DataRoomRole.OWNER))
        assert decision.can_view is True
        assert decision.can_download is False
        assert decision.requires_watermark is True

    def test_viewer_role_does_not_bypass_policy(self):
        decision = resolve(DocumentPolicy(DocumentVisibility.OWNER_ONLY), _viewer(room_role=DataRoomRole.VIEWER))
        assert decision.can_view is False
        assert decision.reason == "owner_only"


class TestVisibilityBranches:
    def test_all_is_visible_to_anyone(self):
        assert resolve(DocumentPolicy(DocumentVisibility.ALL), _viewer()).can_view is True

    def test_owner_only_hidden_even_with_signed_nda(self):
        viewer = _viewer(nda_status=NDAStatus.SIGNED, nda_expires_at=NOW + timedelta(days=1))
        assert resolve(DocumentPolicy(DocumentVisibility.OWNER_ONLY), viewer).can_view is False

    def test_nda_only_without_nda_is_denied(self):
        decision = resolve(DocumentPolicy(DocumentVisibility.NDA_ONLY), _viewer())
        assert (decision.can_view, decision.can_download) == (False, False)
        assert decision.reason == "nda_required"

    @pytest.mark.parametrize("status", [NDAStatus.APPROVED, NDAStatus.SIGNED])
    def test_nda_only_with_valid_nda(self, status):
        viewer = _viewer(nda_status=status, nda_expires_at=NOW + timedelta(days=10))
        decision = resolve(DocumentPolicy(DocumentVisibility.NDA_ONLY), viewer)
        assert decision.can_view is True
        assert decision.reason == "nda_valid"

    @pytest.mark.parametrize("status", [NDAStatus.PENDING, NDAStatus.REJECTED])
    def test_nda_only_with_non_granting_status(self, status):
        viewer = _viewer(nda_status=status, nda_expires_at=NOW + timedelta(days=10))
        assert resolve(DocumentPolicy(DocumentVisibility.NDA_ONLY), viewer).can_view is False

    def test_nda_only_with_expired_nda(self):
        viewer = _viewer(nda_status=NDAStatus.APPROVED, nda_expires_at=NOW - timedelta(seconds=1))
        decision = resolve(DocumentPolicy(DocumentVisibility.NDA_ONLY), viewer)
        assert decision.can_view is False
        assert decision.reason == "nda_expired"

    def test_naive_expiry_is_treated_as_utc(self):
        viewer = _viewer(
            nda_status=NDAStatus.APPROVED,
            nda_expires_at=(NOW + timedelta(hours=1)).replace(tzinfo=None),
        )
        assert resolve(DocumentPolicy(DocumentVisibility.NDA_ONLY), viewer).can_view is True

    def test_transaction_only(self):
        policy = DocumentPolicy(DocumentVisibility.TRANSACTION_ONLY)
        assert resolve(policy, _viewer(has_transaction=True)).can_view is True
        assert resolve(policy, _viewer(has_transaction=False)).can_view is False

    def test_custom_grant_is_case_insensitive(self):
        policy = DocumentPolicy(DocumentVisibility.CUSTOM, grants=frozenset({"lawyer@firm.se"}))
        assert resolve(policy, _viewer(email="Lawyer@Firm.SE")).can_view is True
        assert resolve(policy, _viewer(email="someone@else.se")).can_view is False
        assert resolve(policy, _viewer(email=None)).can_view is False


class TestDecisionInvariants:
    """Exhaustive sweep over policies and viewer contexts."""

    @staticmethod
    def _all_cases():
        policies = [
            DocumentPolicy(v, download_blocked=b, watermark_required=w, grants=frozenset({"a@b.se"}))
            for v, b, w in itertools.product(DocumentVisibility, (False, True), (False, True))
        ]
        viewers = [
            _viewer(
                room_role=role,
                nda_status=nda,
                nda_expires_at=NOW + timedelta(days=1),
                has_transaction=tx,
                email=email,
            )
            for role, nda, tx, email in itertools.product(
                [None, *DataRoomRole], [None, *NDAStatus], (False, True), (None, "a@b.se")
            )
        ]
        return itertools.product(policies, viewers)

    def test_download_implies_view_and_not_blocked(self):
        for policy, viewer in self._all_cases():
            decision = resolve(policy, viewer)
            if decision.can_download:
                assert decision.can_view
                assert not policy.download_blocked

    def test_watermark_only_when_visible_and_required(self):
        for policy, viewer in self._all_cases():
            decision = resolve(policy, viewer)
            assert decision.requires_watermark == (decision.can_view and policy.watermark_required)

    def test_resolve_is_deterministic(self):
        for policy, viewer in self._all_cases():
            assert resolve(policy, viewer) == resolve(policy, viewer)


class TestRoomSettings:
    def test_room_settings_only_tighten(self):
        policy = DocumentPolicy(DocumentVisibility.ALL)
        effective = policy.with_room_settings(download_enabled=False, watermark_downloads=True)
        assert effective.download_blocked is True
        assert effective.watermark_required is True

        relaxed = DocumentPolicy(
            DocumentVisibility.ALL, download_blocked=True, watermark_required=True
        ).with_room_settings(download_enabled=True, watermark_downloads=False)
        assert relaxed.download_blocked is True
        assert relaxed.watermark_required is True


class TestPolicyGuard:
    def test_custom_with_empty_grants_rejected(self):
        with pytest.raises(ValidationError):
            ensure_valid_policy(DocumentPolicy(DocumentVisibility.CUSTOM))

    def test_custom_with_grants_accepted(self):
        ensure_valid_policy(DocumentPolicy(DocumentVisibility.CUSTOM, grants=frozenset({"x@y.se"})))

    def test_non_custom_without_grants_accepted(self):
        ensure_valid_policy(DocumentPolicy(DocumentVisibility.NDA_ONLY))

    def test_normalize_grants(self):
        assert normalize_grants([" A@B.se", "a@b.se", "", "  ", "C@d.se"]) == frozenset({"a@b.se", "c@d.se"})
        assert normalize_grants(None) == frozenset()
