"""Forum discussion module.

Provides the forum discussion engine with:
- Threaded replies with bounded nesting depth
- Post listings with filters, sort modes and pagination
- Tier-gated categories

Note: Router is not exported here to avoid circular imports.
Import directly from src.forum.router when needed.
"""

from .models import (
    FORUM_TABLES_CQL,
    ForumCategory,
    ForumPost,
    ForumReply,
)
from .service import ForumService
from .tiers import UserTier, meets_minimum_tier


__all__ = [
    "FORUM_TABLES_CQL",
    "ForumCategory",
    "ForumPost",
    "ForumReply",
    "ForumService",
    "UserTier",
    "meets_minimum_tier",
]
