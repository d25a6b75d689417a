"""Database models for the forum discussion engine.

Cassandra table definitions for:
- Categories: administered elsewhere, read-only here
- Posts: flat posts carrying denormalized reply aggregates
- Replies: threaded replies (adjacency list via parent_reply_id)

Architecture: Adjacency List pattern for reply threads
- parent_reply_id references the parent reply (NULL for thread roots)
- forum_replies is partitioned by post for whole-thread reads
- forum_replies_by_id gives O(1) lookups while walking ancestor chains
- Author display fields are denormalized onto posts and replies
- Soft delete via deleted_at; every read filters deleted rows
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.forum_categories (
    category_id TEXT PRIMARY KEY,
    slug TEXT,
    name TEXT,
    color TEXT,
    is_active BOOLEAN,
    is_locked BOOLEAN,
    min_tier_to_post TEXT,
    min_tier_to_view TEXT,
    created_at TIMESTAMP
)
"""

CATEGORY_SLUG_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS forum_categories_slug_idx
ON {keyspace}.forum_categories (slug)
"""

# Posts by ID. Aggregates (replies_count, last_reply_*) are written only
# together with the reply rows they summarize, in one logged batch.
POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.forum_posts (
    post_id TEXT PRIMARY KEY,
    title TEXT,
    content TEXT,
    category_id TEXT,
    user_id TEXT,
    author_username TEXT,
    author_display_name TEXT,
    author_avatar_url TEXT,
    book_id TEXT,
    is_pinned BOOLEAN,
    is_locked BOOLEAN,
    is_featured BOOLEAN,
    is_answered BOOLEAN,
    upvotes INT,
    downvotes INT,
    vote_score INT,
    view_count INT,
    replies_count INT,
    last_reply_at TIMESTAMP,
    last_reply_id TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    deleted_at TIMESTAMP
)
"""

POST_CATEGORY_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS forum_posts_category_idx
ON {keyspace}.forum_posts (category_id)
"""

# Replies partitioned by post, oldest first
REPLY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.forum_replies (
    post_id TEXT,
    created_at TIMESTAMP,
    reply_id TEXT,
    user_id TEXT,
    author_username TEXT,
    author_display_name TEXT,
    author_avatar_url TEXT,
    content TEXT,
    parent_reply_id TEXT,
    upvotes INT,
    downvotes INT,
    vote_score INT,
    is_best_answer BOOLEAN,
    updated_at TIMESTAMP,
    deleted_at TIMESTAMP,
    PRIMARY KEY ((post_id), created_at, reply_id)
) WITH CLUSTERING ORDER BY (created_at ASC, reply_id ASC)
"""

# Replies by ID - O(1) lookup for parent resolution and depth walks
REPLIES_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.forum_replies_by_id (
    reply_id TEXT PRIMARY KEY,
    post_id TEXT,
    parent_reply_id TEXT,
    user_id TEXT,
    created_at TIMESTAMP,
    deleted_at TIMESTAMP
)
"""

FORUM_TABLES_CQL = [
    CATEGORY_TABLE_CQL,
    CATEGORY_SLUG_INDEX_CQL,
    POST_TABLE_CQL,
    POST_CATEGORY_INDEX_CQL,
    REPLY_TABLE_CQL,
    REPLIES_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class ForumCategory:
    """Forum category (display fields plus posting/viewing rules)."""

    category_id: str
    slug: str
    name: str
    color: str | None
    is_active: bool
    is_locked: bool
    min_tier_to_post: str
    min_tier_to_view: str

    @classmethod
    def from_row(cls, row: Any) -> "ForumCategory":
        """Create ForumCategory from Cassandra row."""
        return cls(
            category_id=row.category_id,
            slug=row.slug,
            name=row.name,
            color=row.color,
            is_active=bool(row.is_active),
            is_locked=bool(row.is_locked),
            min_tier_to_post=row.min_tier_to_post or "FREE",
            min_tier_to_view=row.min_tier_to_view or "FREE",
        )


@dataclass
class ForumPost:
    """Forum post with its denormalized reply aggregates."""

    post_id: str
    title: str
    content: str
    category_id: str
    user_id: str
    author_username: str | None
    author_display_name: str | None
    author_avatar_url: str | None
    book_id: str | None
    is_pinned: bool
    is_locked: bool
    is_featured: bool
    is_answered: bool
    upvotes: int
    downvotes: int
    vote_score: int
    view_count: int
    replies_count: int
    last_reply_at: datetime | None
    last_reply_id: str | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "ForumPost":
        """Create ForumPost from Cassandra row."""
        return cls(
            post_id=row.post_id,
            title=row.title,
            content=row.content or "",
            category_id=row.category_id,
            user_id=row.user_id,
            author_username=row.author_username,
            author_display_name=row.author_display_name,
            author_avatar_url=row.author_avatar_url,
            book_id=row.book_id,
            is_pinned=bool(row.is_pinned),
            is_locked=bool(row.is_locked),
            is_featured=bool(row.is_featured),
            is_answered=bool(row.is_answered),
            upvotes=row.upvotes or 0,
            downvotes=row.downvotes or 0,
            vote_score=row.vote_score or 0,
            view_count=row.view_count or 0,
            replies_count=row.replies_count or 0,
            last_reply_at=row.last_reply_at,
            last_reply_id=row.last_reply_id,
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
            deleted_at=row.deleted_at,
        )


@dataclass
class ForumReply:
    """Reply to a post, optionally nested under another reply."""

    reply_id: str
    post_id: str
    user_id: str
    author_username: str | None
    author_display_name: str | None
    author_avatar_url: str | None
    content: str
    parent_reply_id: str | None
    upvotes: int
    downvotes: int
    vote_score: int
    is_best_answer: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "ForumReply":
        """Create ForumReply from Cassandra row."""
        return cls(
            reply_id=row.reply_id,
            post_id=row.post_id,
            user_id=row.user_id,
            author_username=row.author_username,
            author_display_name=row.author_display_name,
            author_avatar_url=row.author_avatar_url,
            content=row.content or "",
            parent_reply_id=row.parent_reply_id,
            upvotes=row.upvotes or 0,
            downvotes=row.downvotes or 0,
            vote_score=row.vote_score or 0,
            is_best_answer=bool(row.is_best_answer),
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
            deleted_at=row.deleted_at,
        )


@dataclass
class ReplyLookup:
    """Lightweight reply for O(1) ID lookup."""

    reply_id: str
    post_id: str
    parent_reply_id: str | None
    user_id: str
    created_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "ReplyLookup":
        """Create ReplyLookup from Cassandra row."""
        return cls(
            reply_id=row.reply_id,
            post_id=row.post_id,
            parent_reply_id=row.parent_reply_id,
            user_id=row.user_id,
            created_at=row.created_at,
            deleted_at=row.deleted_at,
        )


# ==============================================================================
# Factory Functions
# ==============================================================================


def generate_id() -> str:
    """Generate a forum identifier (lowercase alphanumeric, leading ``c``)."""
    return f"c{uuid4().hex}"


def create_reply(
    post_id: str,
    user_id: str,
    content: str,
    parent_reply_id: str | None = None,
    author_username: str | None = None,
    author_display_name: str | None = None,
    author_avatar_url: str | None = None,
) -> ForumReply:
    """Create a new reply with zeroed vote counters."""
    now = datetime.now(UTC)
    return ForumReply(
        reply_id=generate_id(),
        post_id=post_id,
        user_id=user_id,
        author_username=author_username,
        author_display_name=author_display_name,
        author_avatar_url=author_avatar_url,
        content=content,
        parent_reply_id=parent_reply_id,
        upvotes=0,
        downvotes=0,
        vote_score=0,
        is_best_answer=False,
        created_at=now,
        updated_at=now,
        deleted_at=None,
    )
