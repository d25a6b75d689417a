"""Pydantic schemas for the forum API.

Responses serialize with camelCase keys (``repliesCount``,
``lastReplyAt``...). Models accept either the camelCase alias or the
Python field name, so cached payloads round-trip through ``model_dump``.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import ForumCategory, ForumPost, ForumReply
from .queries import Pagination, truncate_content
from .replies import ReplyNode


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateReplyRequest(CamelModel):
    """Request to reply to a post (optionally under another reply).

    Length and profanity rules are applied by the reply manager so their
    messages surface as forum validation errors.
    """

    content: str = Field(..., description="Reply text")
    parent_reply_id: str | None = Field(None, pattern=r"^c[a-z0-9]+$")


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserInfo(CamelModel):
    """Author display fields."""

    id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


class CategoryInfo(CamelModel):
    """Category display fields."""

    id: str
    slug: str
    name: str
    color: str | None = None

    @classmethod
    def from_category(cls, category: ForumCategory) -> "CategoryInfo":
        return cls(
            id=category.category_id,
            slug=category.slug,
            name=category.name,
            color=category.color,
        )


class ReplyResponse(CamelModel):
    """A reply with nested children (empty for freshly created replies)."""

    id: str
    post_id: str
    content: str
    user_id: str
    user: UserInfo
    parent_reply_id: str | None = None
    upvotes: int = 0
    downvotes: int = 0
    vote_score: int = 0
    is_best_answer: bool = False
    created_at: datetime
    updated_at: datetime
    replies: list["ReplyResponse"] = []

    @classmethod
    def from_reply(cls, reply: ForumReply) -> "ReplyResponse":
        return cls(
            id=reply.reply_id,
            post_id=reply.post_id,
            content=reply.content,
            user_id=reply.user_id,
            user=UserInfo(
                id=reply.user_id,
                username=reply.author_username,
                display_name=reply.author_display_name,
                avatar_url=reply.author_avatar_url,
            ),
            parent_reply_id=reply.parent_reply_id,
            upvotes=reply.upvotes,
            downvotes=reply.downvotes,
            vote_score=reply.vote_score,
            is_best_answer=reply.is_best_answer,
            created_at=reply.created_at,
            updated_at=reply.updated_at,
        )

    @classmethod
    def from_node(cls, node: ReplyNode) -> "ReplyResponse":
        """Convert a reply tree node (children included)."""
        response = cls.from_reply(node.reply)
        response.replies = [cls.from_node(child) for child in node.children]
        return response


class PostSummary(CamelModel):
    """Post as shown in listings (content truncated to a preview)."""

    id: str
    title: str
    content_preview: str
    category_id: str
    category: CategoryInfo
    user_id: str
    user: UserInfo
    book_id: str | None = None
    is_pinned: bool
    is_locked: bool
    is_featured: bool
    is_answered: bool
    upvotes: int
    downvotes: int
    vote_score: int
    view_count: int
    replies_count: int
    last_reply_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post: ForumPost, category: ForumCategory) -> "PostSummary":
        return cls(
            id=post.post_id,
            title=post.title,
            content_preview=truncate_content(post.content),
            category_id=post.category_id,
            category=CategoryInfo.from_category(category),
            user_id=post.user_id,
            user=_post_author(post),
            book_id=post.book_id,
            is_pinned=post.is_pinned,
            is_locked=post.is_locked,
            is_featured=post.is_featured,
            is_answered=post.is_answered,
            upvotes=post.upvotes,
            downvotes=post.downvotes,
            vote_score=post.vote_score,
            view_count=post.view_count,
            replies_count=post.replies_count,
            last_reply_at=post.last_reply_at,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostDetail(CamelModel):
    """Full post with its reply tree."""

    id: str
    title: str
    content: str
    category_id: str
    category: CategoryInfo
    user_id: str
    user: UserInfo
    book_id: str | None = None
    is_pinned: bool
    is_locked: bool
    is_featured: bool
    is_answered: bool
    upvotes: int
    downvotes: int
    vote_score: int
    view_count: int
    replies_count: int
    replies: list[ReplyResponse] = []
    last_reply_at: datetime | None = None
    last_reply_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(
        cls, post: ForumPost, category: ForumCategory, replies: list[ReplyNode]
    ) -> "PostDetail":
        return cls(
            id=post.post_id,
            title=post.title,
            content=post.content,
            category_id=post.category_id,
            category=CategoryInfo.from_category(category),
            user_id=post.user_id,
            user=_post_author(post),
            book_id=post.book_id,
            is_pinned=post.is_pinned,
            is_locked=post.is_locked,
            is_featured=post.is_featured,
            is_answered=post.is_answered,
            upvotes=post.upvotes,
            downvotes=post.downvotes,
            vote_score=post.vote_score,
            view_count=post.view_count,
            replies_count=post.replies_count,
            replies=[ReplyResponse.from_node(node) for node in replies],
            last_reply_at=post.last_reply_at,
            last_reply_id=post.last_reply_id,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PaginationInfo(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> "PaginationInfo":
        return cls(
            page=pagination.page,
            limit=pagination.limit,
            total=pagination.total,
            total_pages=pagination.total_pages,
            has_more=pagination.has_more,
        )


class ForumPostsResponse(CamelModel):
    """Post listing page."""

    posts: list[PostSummary]
    pagination: PaginationInfo


class PostDetailResponse(CamelModel):
    post: PostDetail


class CreateReplyResponse(CamelModel):
    reply: ReplyResponse


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
    success: bool = True


def _post_author(post: ForumPost) -> UserInfo:
    return UserInfo(
        id=post.user_id,
        username=post.author_username,
        display_name=post.author_display_name,
        avatar_url=post.author_avatar_url,
    )
