"""Tests for the subscription tier gate."""

import pytest

from src.forum.tiers import TIER_ORDER, UserTier, meets_minimum_tier


class TestMeetsMinimumTier:
    @pytest.mark.parametrize(
        ("user_tier", "required_tier", "expected"),
        [
            ("PRO", "FREE", True),
            ("FREE", "PRO", False),
            ("PRO", "PRO", True),
            ("SCHOLAR", "PRO", True),
            ("FREE", "SCHOLAR", False),
            ("FREE", "FREE", True),
            (UserTier.SCHOLAR, UserTier.FREE, True),
            (UserTier.FREE, "PRO", False),
        ],
    )
    def test_order(self, user_tier, required_tier, expected):
        assert meets_minimum_tier(user_tier, required_tier) is expected

    @pytest.mark.parametrize(
        ("user_tier", "required_tier"),
        [("GOLD", "SCHOLAR"), ("FREE", "PLATINUM"), ("pro", "SCHOLAR"), (None, "PRO")],
    )
    def test_unknown_tiers_are_permissive(self, user_tier, required_tier):
        assert meets_minimum_tier(user_tier, required_tier) is True

    def test_total_order(self):
        assert TIER_ORDER["FREE"] < TIER_ORDER["PRO"] < TIER_ORDER["SCHOLAR"]
