"""Cassandra storage for forum categories, posts and replies.

All statements are prepared once per repository. Writes that must land
together (a reply and its post's aggregates) go through a single LOGGED
batch, so either every statement applies or none does.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from cassandra import DriverException
from cassandra.cluster import NoHostAvailable
from cassandra.query import BatchStatement, BatchType

from .exceptions import InternalError
from .models import ForumCategory, ForumPost, ForumReply, ReplyLookup


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)

STORAGE_ERRORS = (DriverException, NoHostAvailable)


class ForumRepository:
    """Row I/O for the forum tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Categories
        self._get_category = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_categories
            WHERE category_id = ?
        """)

        # Uses secondary index on slug
        self._get_category_by_slug = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_categories
            WHERE slug = ?
        """)

        self._list_categories = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_categories
        """)

        # Posts
        self._get_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_posts
            WHERE post_id = ?
        """)

        self._list_posts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_posts
            LIMIT ?
        """)

        # Uses secondary index on category_id
        self._list_posts_by_category = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_posts
            WHERE category_id = ?
            LIMIT ?
        """)

        self._update_post_aggregates = self.session.prepare(f"""
            UPDATE {self.keyspace}.forum_posts
            SET replies_count = ?, last_reply_at = ?, last_reply_id = ?
            WHERE post_id = ?
        """)

        self._update_view_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.forum_posts
            SET view_count = ?
            WHERE post_id = ?
        """)

        # Replies
        self._insert_reply = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.forum_replies
            (post_id, created_at, reply_id, user_id, author_username, author_display_name,
             author_avatar_url, content, parent_reply_id, upvotes, downvotes, vote_score,
             is_best_answer, updated_at, deleted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_reply_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.forum_replies_by_id
            (reply_id, post_id, parent_reply_id, user_id, created_at, deleted_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._get_reply_by_id = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_replies_by_id
            WHERE reply_id = ?
        """)

        self._list_replies = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_replies
            WHERE post_id = ?
        """)

        self._soft_delete_reply = self.session.prepare(f"""
            UPDATE {self.keyspace}.forum_replies
            SET deleted_at = ?, updated_at = ?
            WHERE post_id = ? AND created_at = ? AND reply_id = ?
        """)

        self._soft_delete_reply_by_id = self.session.prepare(f"""
            UPDATE {self.keyspace}.forum_replies_by_id
            SET deleted_at = ?
            WHERE reply_id = ?
        """)

    async def _execute(self, statement: Any, params: list[Any] | None = None) -> Any:
        """Execute a statement, converting driver failures to InternalError."""
        try:
            return await self.session.aexecute(statement, params)
        except STORAGE_ERRORS as e:
            logger.error("forum_storage_error", error=str(e))
            raise InternalError("Storage operation failed") from e

    # ==========================================================================
    # Categories
    # ==========================================================================

    async def get_category(self, category_id: str) -> ForumCategory | None:
        result = await self._execute(self._get_category, [category_id])
        row = result.one()
        return ForumCategory.from_row(row) if row else None

    async def get_category_by_slug(self, slug: str) -> ForumCategory | None:
        result = await self._execute(self._get_category_by_slug, [slug])
        row = result.one()
        return ForumCategory.from_row(row) if row else None

    async def list_categories(self) -> list[ForumCategory]:
        rows = await self._execute(self._list_categories)
        return [ForumCategory.from_row(row) for row in rows]

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def get_post(self, post_id: str) -> ForumPost | None:
        """Get a post by ID, soft-deleted rows included."""
        result = await self._execute(self._get_post, [post_id])
        row = result.one()
        return ForumPost.from_row(row) if row else None

    async def list_posts(
        self, category_id: str | None = None, limit: int = 1000
    ) -> list[ForumPost]:
        """Load listing candidates, optionally narrowed to one category.

        Rows come back in storage order; callers filter and sort.
        """
        if category_id:
            rows = await self._execute(self._list_posts_by_category, [category_id, limit])
        else:
            rows = await self._execute(self._list_posts, [limit])
        return [ForumPost.from_row(row) for row in rows]

    async def update_view_count(self, post_id: str, view_count: int) -> None:
        await self._execute(self._update_view_count, [view_count, post_id])

    # ==========================================================================
    # Replies
    # ==========================================================================

    async def get_reply_lookup(self, reply_id: str) -> ReplyLookup | None:
        """Get the lightweight reply row (parent pointer, post, author)."""
        result = await self._execute(self._get_reply_by_id, [reply_id])
        row = result.one()
        return ReplyLookup.from_row(row) if row else None

    async def list_replies(self, post_id: str) -> list[ForumReply]:
        """List every reply of a post, oldest first, deleted rows included."""
        rows = await self._execute(self._list_replies, [post_id])
        return [ForumReply.from_row(row) for row in rows]

    async def commit_reply(self, reply: ForumReply, replies_count: int) -> None:
        """Insert a reply and update its post's aggregates atomically.

        Args:
            reply: New reply
            replies_count: Post reply count including the new reply
        """
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._insert_reply,
            [
                reply.post_id,
                reply.created_at,
                reply.reply_id,
                reply.user_id,
                reply.author_username,
                reply.author_display_name,
                reply.author_avatar_url,
                reply.content,
                reply.parent_reply_id,
                reply.upvotes,
                reply.downvotes,
                reply.vote_score,
                reply.is_best_answer,
                reply.updated_at,
                reply.deleted_at,
            ],
        )
        batch.add(
            self._insert_reply_by_id,
            [
                reply.reply_id,
                reply.post_id,
                reply.parent_reply_id,
                reply.user_id,
                reply.created_at,
                reply.deleted_at,
            ],
        )
        batch.add(
            self._update_post_aggregates,
            [replies_count, reply.created_at, reply.reply_id, reply.post_id],
        )
        await self._execute(batch)

    async def commit_reply_deletion(
        self,
        reply: ReplyLookup,
        deleted_at: datetime,
        replies_count: int,
        last_reply_at: datetime | None,
        last_reply_id: str | None,
    ) -> None:
        """Soft-delete a reply and rewrite its post's aggregates atomically."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._soft_delete_reply,
            [deleted_at, deleted_at, reply.post_id, reply.created_at, reply.reply_id],
        )
        batch.add(self._soft_delete_reply_by_id, [deleted_at, reply.reply_id])
        batch.add(
            self._update_post_aggregates,
            [replies_count, last_reply_at, last_reply_id, reply.post_id],
        )
        await self._execute(batch)
