"""
MacroRelay Backend — Access-Control Gate Unit Tests
=====================================================

What we test:
    ✅ can_invoke decision table for NONE / SHARED / RESTRICTED
    ✅ normalize_keys sorts, de-duplicates and enforces the tier rule
"""

from types import SimpleNamespace

import pytest

from app.exceptions import ValidationError
from app.models.device import Device
from app.models.enums import AccessTier
from app.services.access import can_invoke, normalize_keys


def resource(access: AccessTier, keys=()):
    return SimpleNamespace(access=access, keys=list(keys))


class TestCanInvoke:
    """Decision table."""

    @pytest.mark.parametrize("actor_keys", [[], ["k1"], ["k1", "k2"]])
    def test_none_never_admits(self, actor_keys):
        assert can_invoke(actor_keys, resource(AccessTier.NONE, ["k1"])) is False

    @pytest.mark.parametrize("actor_keys", [[], ["k1"], ["unrelated"]])
    def test_shared_always_admits(self, actor_keys):
        assert can_invoke(actor_keys, resource(AccessTier.SHARED)) is True

    def test_restricted_admits_on_common_key(self):
        assert can_invoke(["a", "k2"], resource(AccessTier.RESTRICTED, ["k1", "k2"])) is True

    def test_restricted_rejects_disjoint_keys(self):
        assert can_invoke(["a", "b"], resource(AccessTier.RESTRICTED, ["k1", "k2"])) is False

    def test_restricted_without_keys_is_unreachable(self):
        assert can_invoke(["k1"], resource(AccessTier.RESTRICTED, [])) is False
        assert can_invoke([], resource(AccessTier.RESTRICTED, [])) is False

    def test_caller_without_keys_cannot_open_restricted(self):
        assert can_invoke([], resource(AccessTier.RESTRICTED, ["k1"])) is False

    def test_works_on_orm_rows(self):
        device = Device(id="d1", name="Phone", access=AccessTier.RESTRICTED, keys=["k1"])
        assert can_invoke(["k1"], device) is True
        assert can_invoke(["k2"], device) is False


class TestNormalizeKeys:

    def test_sorted_and_unique(self):
        assert normalize_keys(AccessTier.RESTRICTED, ["b", "a", "b"]) == ["a", "b"]

    def test_empty_is_fine_for_every_tier(self):
        for tier in AccessTier:
            assert normalize_keys(tier, []) == []

    @pytest.mark.parametrize("tier", [AccessTier.SHARED, AccessTier.NONE])
    def test_keys_rejected_outside_restricted(self, tier):
        with pytest.raises(ValidationError) as exc_info:
            normalize_keys(tier, ["k1"])
        assert exc_info.value.field == "keys"

    def test_blank_key_rejected(self):
        with pytest.raises(ValidationError):
            normalize_keys(AccessTier.RESTRICTED, ["k1", "  "])
