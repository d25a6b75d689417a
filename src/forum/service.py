"""Forum service layer.

Business logic for:
- Post listings (normalize, filter, order, paginate, cache)
- Post detail with its reply tree
- Reply creation and removal (delegated to ReplyTreeManager)
- Listing cache invalidation after reply writes
"""

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog
from redis.exceptions import RedisError

from src.core.redis import posts_cache_pattern

from .exceptions import ForbiddenError, InternalError, NotFoundError
from .models import ForumCategory, ForumPost
from .queries import (
    POSTS_CACHE_TTL,
    ListPostsQuery,
    PostSortOption,
    apply_order_by,
    build_order_by,
    build_posts_cache_key,
    calculate_pagination,
    parse_list_posts_query,
)
from .replies import MAX_REPLY_DEPTH, ReplyTreeManager, build_reply_tree
from .repository import ForumRepository
from .schemas import (
    CreateReplyRequest,
    CreateReplyResponse,
    ForumPostsResponse,
    MessageResponse,
    PaginationInfo,
    PostDetail,
    PostDetailResponse,
    PostSummary,
    ReplyResponse,
)
from .tiers import meets_minimum_tier
from .validation import REPLY_MAX_LENGTH


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from src.auth.schemas import AuthenticatedUser


logger = structlog.get_logger(__name__)


class ForumService:
    """Service composing the query engine, reply manager and storage."""

    REPLIES_LIMIT = 50
    LIST_SCAN_LIMIT = 1000

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis",
        *,
        max_reply_depth: int = MAX_REPLY_DEPTH,
        reply_max_length: int = REPLY_MAX_LENGTH,
        replies_limit: int = REPLIES_LIMIT,
        list_scan_limit: int = LIST_SCAN_LIMIT,
        cache_ttl: int = POSTS_CACHE_TTL,
        lock_timeout: float = 10.0,
    ):
        """Initialize with Cassandra session and Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.replies_limit = replies_limit
        self.list_scan_limit = list_scan_limit
        self.cache_ttl = cache_ttl
        self.max_reply_depth = max_reply_depth

        self.repository = ForumRepository(session, keyspace)
        self.replies = ReplyTreeManager(
            self.repository,
            redis,
            max_depth=max_reply_depth,
            max_length=reply_max_length,
            lock_timeout=lock_timeout,
        )

    # ==========================================================================
    # Listing
    # ==========================================================================

    async def list_posts(
        self, raw_query: Mapping[str, Any], viewer: "AuthenticatedUser"
    ) -> ForumPostsResponse:
        """List posts for a viewer.

        Invalid query values degrade to defaults. An unknown category slug
        is a NotFound.
        """
        params = parse_list_posts_query(raw_query)
        cache_key = build_posts_cache_key(params, viewer.tier)

        cached = await self._get_cached_posts(cache_key)
        if cached is not None:
            logger.debug("forum_posts_cache_hit", cache_key=cache_key)
            return cached

        category_id = params.category_id
        if not category_id and params.category_slug:
            category = await self.repository.get_category_by_slug(params.category_slug)
            if category is None:
                raise NotFoundError("Category not found")
            category_id = category.category_id

        categories = {c.category_id: c for c in await self.repository.list_categories()}
        candidates = await self.repository.list_posts(
            category_id=category_id, limit=self.list_scan_limit
        )
        if len(candidates) >= self.list_scan_limit:
            logger.warning(
                "forum_posts_scan_truncated",
                category_id=category_id,
                scan_limit=self.list_scan_limit,
            )

        visible = [
            post
            for post in candidates
            if self._is_listed(post, categories.get(post.category_id), params, viewer)
            and (category_id is None or post.category_id == category_id)
        ]
        ordered = apply_order_by(visible, build_order_by(params.sort_by))
        page = ordered[params.offset : params.offset + params.limit]

        response = ForumPostsResponse(
            posts=[PostSummary.from_post(post, categories[post.category_id]) for post in page],
            pagination=PaginationInfo.from_pagination(
                calculate_pagination(params.page, params.limit, len(ordered))
            ),
        )

        await self._cache_posts(cache_key, response)

        logger.debug(
            "forum_posts_listed",
            sort_by=params.sort_by.value,
            total=len(ordered),
            page=params.page,
        )
        return response

    @staticmethod
    def _is_listed(
        post: ForumPost,
        category: ForumCategory | None,
        params: ListPostsQuery,
        viewer: "AuthenticatedUser",
    ) -> bool:
        """Apply visibility rules and listing filters to one post."""
        if post.is_deleted or category is None or not category.is_active:
            return False
        if not meets_minimum_tier(viewer.tier, category.min_tier_to_view):
            return False

        if params.book_id and post.book_id != params.book_id:
            return False
        if params.is_pinned is not None and post.is_pinned != params.is_pinned:
            return False
        if params.is_featured is not None and post.is_featured != params.is_featured:
            return False
        if params.is_answered is not None and post.is_answered != params.is_answered:
            return False
        if params.sort_by == PostSortOption.UNANSWERED and post.replies_count != 0:
            return False

        if params.search:
            needle = params.search.casefold()
            if needle not in post.title.casefold() and needle not in post.content.casefold():
                return False

        return True

    # ==========================================================================
    # Post Detail
    # ==========================================================================

    async def get_post(self, post_id: str, viewer: "AuthenticatedUser") -> PostDetailResponse:
        """Get a post with its reply tree.

        Replies: non-deleted, best answers first then oldest first, capped
        at ``replies_limit`` before nesting.
        """
        post = await self.repository.get_post(post_id)
        if post is None or post.is_deleted:
            raise NotFoundError("Post not found")

        category = await self.repository.get_category(post.category_id)
        if category is None or not category.is_active:
            raise NotFoundError("Post not found")

        if not meets_minimum_tier(viewer.tier, category.min_tier_to_view):
            raise ForbiddenError(
                f"This category requires {category.min_tier_to_view} tier or higher"
            )

        replies = [r for r in await self.repository.list_replies(post_id) if not r.is_deleted]
        replies.sort(key=lambda r: (not r.is_best_answer, r.created_at))
        tree = build_reply_tree(replies[: self.replies_limit], self.max_reply_depth)

        await self._increment_view_count(post)

        return PostDetailResponse(post=PostDetail.from_post(post, category, tree))

    async def _increment_view_count(self, post: ForumPost) -> None:
        """Bump the view counter; failures are logged, never raised."""
        try:
            await self.repository.update_view_count(post.post_id, post.view_count + 1)
        except InternalError as e:
            logger.warning("forum_view_count_failed", post_id=post.post_id, error=str(e))

    # ==========================================================================
    # Replies
    # ==========================================================================

    async def create_reply(
        self, post_id: str, viewer: "AuthenticatedUser", body: CreateReplyRequest
    ) -> CreateReplyResponse:
        reply = await self.replies.create_reply(
            post_id=post_id,
            author=viewer,
            content=body.content,
            parent_reply_id=body.parent_reply_id,
        )
        await self._invalidate_posts_cache()
        return CreateReplyResponse(reply=ReplyResponse.from_reply(reply))

    async def delete_reply(self, reply_id: str, viewer: "AuthenticatedUser") -> MessageResponse:
        await self.replies.delete_reply(reply_id, viewer)
        await self._invalidate_posts_cache()
        return MessageResponse(message="Reply deleted")

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def _get_cached_posts(self, cache_key: str) -> ForumPostsResponse | None:
        """Get a cached listing page."""
        try:
            cached = await self.redis.get(cache_key)
        except RedisError as e:
            logger.warning("forum_posts_cache_read_failed", error=str(e))
            return None

        if cached:
            return ForumPostsResponse(**json.loads(cached))

        return None

    async def _cache_posts(self, cache_key: str, response: ForumPostsResponse) -> None:
        try:
            await self.redis.setex(
                cache_key,
                self.cache_ttl,
                json.dumps(response.model_dump(mode="json")),
            )
        except RedisError as e:
            logger.warning("forum_posts_cache_write_failed", error=str(e))

    async def _invalidate_posts_cache(self) -> None:
        """Drop every cached listing (reply counters changed)."""
        try:
            keys = [key async for key in self.redis.scan_iter(match=posts_cache_pattern())]
            if keys:
                await self.redis.delete(*keys)
        except RedisError as e:
            logger.warning("forum_posts_cache_invalidation_failed", error=str(e))
