"""Forum API endpoints.

Provides routes for:
- Post listings with filters, sorting and pagination
- Post detail with nested replies
- Reply creation and removal
"""

import structlog
from fastapi import APIRouter, Request, status

from src.auth.dependencies import CurrentUser

from .dependencies import ForumServiceDep, handle_forum_error
from .exceptions import ForumError
from .schemas import (
    CreateReplyRequest,
    CreateReplyResponse,
    ForumPostsResponse,
    MessageResponse,
    PostDetailResponse,
)


logger = structlog.get_logger(__name__)


router = APIRouter(prefix="/v1/forum", tags=["forum"])


@router.get(
    "/posts",
    response_model=ForumPostsResponse,
    summary="List posts",
)
async def list_posts(
    request: Request,
    forum_service: ForumServiceDep,
    user: CurrentUser,
) -> ForumPostsResponse:
    """List forum posts.

    Query parameters: page, limit, sortBy (recent, popular, unanswered,
    mostViewed, lastReply), categoryId, categorySlug, search, isPinned,
    isFeatured, isAnswered, bookId. Invalid values fall back to defaults.
    Results are cached for 5 minutes.
    """
    try:
        return await forum_service.list_posts(dict(request.query_params), user)
    except ForumError as e:
        raise handle_forum_error(e) from e


@router.get(
    "/posts/{post_id}",
    response_model=PostDetailResponse,
    summary="Get post",
)
async def get_post(
    post_id: str,
    forum_service: ForumServiceDep,
    user: CurrentUser,
) -> PostDetailResponse:
    """Get a post with its nested replies."""
    try:
        return await forum_service.get_post(post_id, user)
    except ForumError as e:
        raise handle_forum_error(e) from e


@router.post(
    "/posts/{post_id}/replies",
    response_model=CreateReplyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to post",
)
async def create_reply(
    post_id: str,
    data: CreateReplyRequest,
    forum_service: ForumServiceDep,
    user: CurrentUser,
) -> CreateReplyResponse:
    """Reply to a post, optionally under an existing reply.

    Nesting is limited to 5 levels.
    """
    try:
        return await forum_service.create_reply(post_id, user, data)
    except ForumError as e:
        if e.code == "internal_error":
            logger.error("forum_reply_create_failed", post_id=post_id, error=e.message)
        raise handle_forum_error(e) from e


@router.delete(
    "/replies/{reply_id}",
    response_model=MessageResponse,
    summary="Delete reply",
)
async def delete_reply(
    reply_id: str,
    forum_service: ForumServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    """Soft-delete a reply (author, moderator or admin)."""
    try:
        return await forum_service.delete_reply(reply_id, user)
    except ForumError as e:
        raise handle_forum_error(e) from e
