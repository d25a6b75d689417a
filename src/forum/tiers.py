"""Subscription tier gate.

Tiers form a total order:
- FREE (level 0): Registered reader
- PRO (level 1): Paid subscription
- SCHOLAR (level 2): Highest subscription

Categories name the minimum tier needed to view or post in them.
"""

from enum import Enum


class UserTier(str, Enum):
    """Subscription tiers, lowest first."""

    FREE = "FREE"
    PRO = "PRO"
    SCHOLAR = "SCHOLAR"


# Tier ordering (tier -> level)
TIER_ORDER: dict[str, int] = {
    UserTier.FREE.value: 0,
    UserTier.PRO.value: 1,
    UserTier.SCHOLAR.value: 2,
}


def meets_minimum_tier(user_tier: UserTier | str, required_tier: UserTier | str) -> bool:
    """Check if a user's tier is at least the required tier.

    Unrecognized tier names on either side are allowed through rather than
    denied.

    Args:
        user_tier: The caller's subscription tier
        required_tier: The minimum tier required

    Returns:
        True if the user's level >= the required level

    Examples:
        >>> meets_minimum_tier("PRO", "FREE")
        True
        >>> meets_minimum_tier("FREE", "PRO")
        False
        >>> meets_minimum_tier("PRO", "GOLD")
        True
    """
    user_level = TIER_ORDER.get(_tier_name(user_tier))
    required_level = TIER_ORDER.get(_tier_name(required_tier))

    if user_level is None or required_level is None:
        return True

    return user_level >= required_level


def _tier_name(tier: UserTier | str | None) -> str | None:
    if isinstance(tier, UserTier):
        return tier.value
    return tier
