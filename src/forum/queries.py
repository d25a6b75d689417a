"""Post listing query engine.

Turns untyped query-string values into a normalized, bounded
ListPostsQuery, and derives from it:
- the ordering rules for the listing
- pagination metadata
- the response cache key

Malformed values never fail a request: each parser degrades to its
default (or to "not filtered").
"""

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import quote


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MIN_LIMIT = 1
MAX_LIMIT = 100
MAX_SEARCH_LENGTH = 200
MAX_SLUG_LENGTH = 100
CONTENT_PREVIEW_LENGTH = 200

# Cache TTL for post listings (5 minutes)
POSTS_CACHE_TTL = 60 * 5

POSTS_CACHE_PREFIX = "forum:posts"

ID_PATTERN = re.compile(r"^c[a-z0-9]+$")
SLUG_PATTERN = re.compile(rf"^[a-z0-9-]{{1,{MAX_SLUG_LENGTH}}}$")
# Leading decimal integer; trailing text is ignored ("5abc" is 5, "1e2" is 1)
INT_PREFIX_PATTERN = re.compile(r"^\s*([+-]?[0-9]+)")


class PostSortOption(str, Enum):
    """Canonical listing sort modes."""

    RECENT = "recent"
    POPULAR = "popular"
    UNANSWERED = "unanswered"
    MOST_VIEWED = "mostViewed"
    LAST_REPLY = "lastReply"


# Lower-cased input -> canonical sort
SORT_ALIASES: dict[str, PostSortOption] = {
    "recent": PostSortOption.RECENT,
    "newest": PostSortOption.RECENT,
    "latest": PostSortOption.RECENT,
    "popular": PostSortOption.POPULAR,
    "top": PostSortOption.POPULAR,
    "votes": PostSortOption.POPULAR,
    "unanswered": PostSortOption.UNANSWERED,
    "noreplies": PostSortOption.UNANSWERED,
    "mostviewed": PostSortOption.MOST_VIEWED,
    "views": PostSortOption.MOST_VIEWED,
    "lastreply": PostSortOption.LAST_REPLY,
    "active": PostSortOption.LAST_REPLY,
}

# Ordering field -> ForumPost attribute
ORDER_FIELDS = {
    "isPinned": "is_pinned",
    "voteScore": "vote_score",
    "viewCount": "view_count",
    "lastReplyAt": "last_reply_at",
    "createdAt": "created_at",
}

OrderBy = list[tuple[str, str]]


@dataclass(frozen=True)
class ListPostsQuery:
    """Normalized listing parameters."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: PostSortOption = PostSortOption.RECENT
    category_id: str | None = None
    category_slug: str | None = None
    search: str | None = None
    is_pinned: bool | None = None
    is_featured: bool | None = None
    is_answered: bool | None = None
    book_id: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Pagination:
    """Pagination metadata for a listing page."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


# ==============================================================================
# Parameter Parsing
# ==============================================================================


def _parse_int(value: Any) -> int | None:
    """Parse an integer.

    Strings contribute their leading digits; numbers are floored.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        match = INT_PREFIX_PATTERN.match(value)
        return int(match.group(1)) if match else None

    if isinstance(value, float) and math.isfinite(value):
        return math.floor(value)

    return None


def parse_page(value: Any) -> int:
    """Parse page number; anything missing, non-numeric or < 1 is page 1."""
    page = _parse_int(value)
    if page is None or page < 1:
        return DEFAULT_PAGE
    return page


def parse_limit(value: Any) -> int:
    """Parse page size.

    Out-of-range values fall back to the default rather than being clamped.

    Examples:
        >>> parse_limit("100")
        100
        >>> parse_limit("500")
        20
    """
    limit = _parse_int(value)
    if limit is None or limit < MIN_LIMIT or limit > MAX_LIMIT:
        return DEFAULT_LIMIT
    return limit


def parse_sort_by(value: Any) -> PostSortOption:
    if isinstance(value, str):
        return SORT_ALIASES.get(value.strip().lower(), PostSortOption.RECENT)
    return PostSortOption.RECENT


def _parse_id(value: Any) -> str | None:
    if isinstance(value, str):
        trimmed = value.strip()
        if ID_PATTERN.match(trimmed):
            return trimmed
    return None


def parse_category_id(value: Any) -> str | None:
    return _parse_id(value)


def parse_book_id(value: Any) -> str | None:
    return _parse_id(value)


def parse_category_slug(value: Any) -> str | None:
    if isinstance(value, str):
        slug = value.strip().lower()
        if SLUG_PATTERN.match(slug):
            return slug
    return None


def parse_search(value: Any) -> str | None:
    if isinstance(value, str):
        trimmed = value.strip()
        if 0 < len(trimmed) <= MAX_SEARCH_LENGTH:
            return trimmed
    return None


def parse_boolean(value: Any) -> bool | None:
    """Parse a boolean flag ("true"/"1", "false"/"0" or a literal bool)."""
    if value is True or value in ("true", "1"):
        return True
    if value is False or value in ("false", "0"):
        return False
    return None


def parse_list_posts_query(raw: Mapping[str, Any]) -> ListPostsQuery:
    """Normalize raw listing parameters (camelCase query-string names)."""
    return ListPostsQuery(
        page=parse_page(raw.get("page")),
        limit=parse_limit(raw.get("limit")),
        sort_by=parse_sort_by(raw.get("sortBy")),
        category_id=parse_category_id(raw.get("categoryId")),
        category_slug=parse_category_slug(raw.get("categorySlug")),
        search=parse_search(raw.get("search")),
        is_pinned=parse_boolean(raw.get("isPinned")),
        is_featured=parse_boolean(raw.get("isFeatured")),
        is_answered=parse_boolean(raw.get("isAnswered")),
        book_id=parse_book_id(raw.get("bookId")),
    )


# ==============================================================================
# Ordering
# ==============================================================================


def build_order_by(sort_by: PostSortOption | str) -> OrderBy:
    """Build ordering rules for a sort mode.

    Pinned posts always come first; createdAt desc is the final tie-break.
    """
    base: OrderBy = [("isPinned", "desc")]

    if sort_by == PostSortOption.POPULAR:
        return [*base, ("voteScore", "desc"), ("createdAt", "desc")]
    if sort_by == PostSortOption.MOST_VIEWED:
        return [*base, ("viewCount", "desc"), ("createdAt", "desc")]
    if sort_by == PostSortOption.LAST_REPLY:
        return [*base, ("lastReplyAt", "desc"), ("createdAt", "desc")]

    # recent, unanswered (a filter, not an ordering) and unknown values
    return [*base, ("createdAt", "desc")]


def apply_order_by(posts: Iterable[Any], order_by: OrderBy) -> list[Any]:
    """Sort posts in memory by ordering rules.

    Applies one stable sort per rule, last rule first. Null values sort
    last whatever the direction.
    """
    ordered = list(posts)

    for field, direction in reversed(order_by):
        attribute = ORDER_FIELDS.get(field, field)
        present = [p for p in ordered if getattr(p, attribute, None) is not None]
        missing = [p for p in ordered if getattr(p, attribute, None) is None]
        present.sort(
            key=lambda p, attr=attribute: getattr(p, attr),
            reverse=direction == "desc",
        )
        ordered = present + missing

    return ordered


# ==============================================================================
# Pagination & Cache Keys
# ==============================================================================


def calculate_pagination(page: int, limit: int, total: int) -> Pagination:
    """Compute pagination metadata.

    Examples:
        >>> calculate_pagination(1, 20, 100).total_pages
        5
        >>> calculate_pagination(5, 20, 100).has_more
        False
    """
    total_pages = math.ceil(total / limit) if total > 0 else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_more=page * limit < total,
    )


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_posts_cache_key(params: ListPostsQuery, viewer_tier: str | None = None) -> str:
    """Build the response cache key for a listing.

    Every present dimension gets its own prefixed segment. Search text is
    percent-encoded so it cannot collide with the ":" separator.
    """
    parts = [
        POSTS_CACHE_PREFIX,
        f"p{params.page}",
        f"l{params.limit}",
        f"s{PostSortOption(params.sort_by).value}",
    ]
    if params.category_id:
        parts.append(f"cat{params.category_id}")
    if params.category_slug:
        parts.append(f"slug{params.category_slug}")
    if params.search:
        parts.append(f"q{quote(params.search, safe='')}")
    if params.is_pinned is not None:
        parts.append(f"pin{_flag(params.is_pinned)}")
    if params.is_featured is not None:
        parts.append(f"feat{_flag(params.is_featured)}")
    if params.is_answered is not None:
        parts.append(f"ans{_flag(params.is_answered)}")
    if params.book_id:
        parts.append(f"book{params.book_id}")
    if viewer_tier:
        parts.append(f"tier{viewer_tier}")
    return ":".join(parts)


def truncate_content(content: str, max_length: int = CONTENT_PREVIEW_LENGTH) -> str:
    """Truncate content to a preview, marking the cut with an ellipsis."""
    if len(content) <= max_length:
        return content
    return content[:max_length].strip() + "..."
