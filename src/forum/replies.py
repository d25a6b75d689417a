"""Reply tree management.

Creates and removes replies while keeping two invariants:
- a reply's parent chain stays acyclic and at most ``max_depth`` long
- the post's replies_count / last_reply_at / last_reply_id always agree
  with its non-deleted replies

Writers touching the same post are serialized by a Redis lock, and each
reply write lands together with the post aggregate update in one logged
batch.
"""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from redis.exceptions import LockError, RedisError

from src.auth.permissions import is_moderator
from src.core.redis import post_lock_name

from .exceptions import ForbiddenError, ForumValidationError, InternalError, NotFoundError
from .models import ForumCategory, ForumPost, ForumReply, ReplyLookup, create_reply
from .repository import ForumRepository
from .tiers import meets_minimum_tier
from .validation import REPLY_MAX_LENGTH, validate_reply_content


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from src.auth.schemas import AuthenticatedUser


logger = structlog.get_logger(__name__)

MAX_REPLY_DEPTH = 5


@dataclass
class ReplyNode:
    """A reply with its nested children."""

    reply: ForumReply
    depth: int
    children: list["ReplyNode"] = field(default_factory=list)


def build_reply_tree(
    replies: Iterable[ForumReply], max_depth: int = MAX_REPLY_DEPTH
) -> list[ReplyNode]:
    """Nest a flat list of replies by parent_reply_id.

    Replies whose parent is not in the list become roots (depth 0).
    Nodes at depth ``max_depth`` or deeper are left out. Input order is
    kept among siblings.
    """
    replies = list(replies)
    present = {reply.reply_id for reply in replies}

    children_of: dict[str, list[ForumReply]] = {}
    roots: list[ReplyNode] = []
    for reply in replies:
        if reply.parent_reply_id and reply.parent_reply_id in present:
            children_of.setdefault(reply.parent_reply_id, []).append(reply)
        else:
            roots.append(ReplyNode(reply=reply, depth=0))

    # Iterative walk; replies caught in a parent cycle never reach a root
    pending = list(roots)
    while pending:
        node = pending.pop()
        child_depth = node.depth + 1
        if child_depth >= max_depth:
            continue
        for child in children_of.get(node.reply.reply_id, []):
            child_node = ReplyNode(reply=child, depth=child_depth)
            node.children.append(child_node)
            pending.append(child_node)

    return roots


class ReplyTreeManager:
    """Validates, creates and removes forum replies."""

    def __init__(
        self,
        repository: ForumRepository,
        redis: "Redis",
        max_depth: int = MAX_REPLY_DEPTH,
        max_length: int = REPLY_MAX_LENGTH,
        lock_timeout: float = 10.0,
    ):
        self.repository = repository
        self.redis = redis
        self.max_depth = max_depth
        self.max_length = max_length
        self.lock_timeout = lock_timeout

    # ==========================================================================
    # Post Lock
    # ==========================================================================

    @asynccontextmanager
    async def _post_lock(self, post_id: str) -> AsyncIterator[None]:
        """Hold the per-post write lock.

        The lease only bounds a crashed holder; waiting is capped at the
        same duration.
        """
        lock = self.redis.lock(
            post_lock_name(post_id),
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.error("forum_post_lock_failed", post_id=post_id, error=str(e))
            raise InternalError("Could not lock post for update") from e

        if not acquired:
            logger.error("forum_post_lock_timeout", post_id=post_id)
            raise InternalError("Could not lock post for update")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Lease expired before release
                logger.warning("forum_post_lock_expired", post_id=post_id)
            except RedisError as e:
                # Lease expiry frees the lock
                logger.warning("forum_post_lock_release_failed", post_id=post_id, error=str(e))

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def _get_post_with_category(self, post_id: str) -> tuple[ForumPost, ForumCategory]:
        """Resolve a live post and its active category, else NotFound."""
        post = await self.repository.get_post(post_id)
        if post is None or post.is_deleted:
            raise NotFoundError("Post not found")

        category = await self.repository.get_category(post.category_id)
        # Inactive categories look exactly like missing posts
        if category is None or not category.is_active:
            raise NotFoundError("Post not found")

        return post, category

    async def _get_live_reply(self, reply_id: str, post_id: str) -> ReplyLookup | None:
        reply = await self.repository.get_reply_lookup(reply_id)
        if reply is None or reply.is_deleted or reply.post_id != post_id:
            return None
        return reply

    async def compute_chain_depth(self, post_id: str, reply_id: str) -> int:
        """Count the replies on the ancestor chain starting at reply_id.

        The starting reply counts as one hop. The walk stops at a reply
        without parent, or before an ancestor that no longer resolves
        (missing, deleted or from another post). It never takes more than
        ``max_depth + 1`` hops, so corrupted cyclic data still terminates.
        """
        depth = 0
        current_id: str | None = reply_id

        while current_id is not None and depth < self.max_depth + 1:
            reply = await self._get_live_reply(current_id, post_id)
            if reply is None:
                break
            depth += 1
            current_id = reply.parent_reply_id

        return depth

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def create_reply(
        self,
        post_id: str,
        author: "AuthenticatedUser",
        content: str,
        parent_reply_id: str | None = None,
    ) -> ForumReply:
        """Create a reply and update its post's aggregates.

        Checks, in order:
        - post exists, is not deleted, and its category exists and is active
        - neither post nor category is locked
        - author tier meets the category's posting tier
        - content passes length and profanity validation
        - parent (if any) is a live reply of the same post
        - parent chain depth is below ``max_depth``

        Raises:
            NotFoundError: Post, category or parent reply not found
            ForbiddenError: Locked post/category or insufficient tier
            ForumValidationError: Invalid content or depth exceeded
            InternalError: Storage or lock failure
        """
        post, category = await self._get_post_with_category(post_id)

        if post.is_locked or category.is_locked:
            raise ForbiddenError("This post is locked and cannot receive new replies")

        if not meets_minimum_tier(author.tier, category.min_tier_to_post):
            raise ForbiddenError(
                f"This category requires {category.min_tier_to_post} tier or higher to reply"
            )

        errors = validate_reply_content(content, self.max_length)
        if errors:
            raise ForumValidationError(errors[0])

        if parent_reply_id:
            parent = await self._get_live_reply(parent_reply_id, post_id)
            if parent is None:
                raise NotFoundError("Parent reply not found")

            depth = await self.compute_chain_depth(post_id, parent_reply_id)
            if depth >= self.max_depth:
                raise ForumValidationError("Maximum reply depth reached")

        async with self._post_lock(post_id):
            # Re-read so the counter builds on the latest committed value
            current = await self.repository.get_post(post_id)
            if current is None or current.is_deleted:
                raise NotFoundError("Post not found")

            # Stamped under the lock so the newest commit is also the newest reply
            reply = create_reply(
                post_id=post_id,
                user_id=author.id,
                content=content.strip(),
                parent_reply_id=parent_reply_id or None,
                author_username=author.username,
                author_display_name=author.display_name,
                author_avatar_url=author.avatar_url,
            )
            await self.repository.commit_reply(reply, current.replies_count + 1)

        logger.info(
            "forum_reply_created",
            user_id=author.id,
            post_id=post_id,
            reply_id=reply.reply_id,
            parent_reply_id=reply.parent_reply_id,
        )

        return reply

    async def delete_reply(self, reply_id: str, actor: "AuthenticatedUser") -> ReplyLookup:
        """Soft-delete a reply and roll back its post's aggregates.

        Only the author or a moderator may delete. When the reply was the
        post's last reply, the pointer moves to the newest remaining one.
        Children of the deleted reply stay in place.
        """
        reply = await self.repository.get_reply_lookup(reply_id)
        if reply is None or reply.is_deleted:
            raise NotFoundError("Reply not found")

        if reply.user_id != actor.id and not is_moderator(actor):
            raise ForbiddenError("You can only delete your own replies")

        deleted_at = datetime.now(UTC)

        async with self._post_lock(reply.post_id):
            # A concurrent delete may have won the lock first
            current = await self.repository.get_reply_lookup(reply_id)
            if current is None or current.is_deleted:
                raise NotFoundError("Reply not found")

            post = await self.repository.get_post(reply.post_id)
            if post is None:
                raise NotFoundError("Post not found")

            remaining = [
                r
                for r in await self.repository.list_replies(reply.post_id)
                if not r.is_deleted and r.reply_id != reply_id
            ]
            latest = max(remaining, key=lambda r: (r.created_at, r.reply_id), default=None)

            await self.repository.commit_reply_deletion(
                reply,
                deleted_at=deleted_at,
                replies_count=max(0, post.replies_count - 1),
                last_reply_at=latest.created_at if latest else None,
                last_reply_id=latest.reply_id if latest else None,
            )

        reply.deleted_at = deleted_at

        logger.info(
            "forum_reply_deleted",
            user_id=actor.id,
            post_id=reply.post_id,
            reply_id=reply_id,
            by_moderator=reply.user_id != actor.id,
        )

        return reply
