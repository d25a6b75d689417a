"""FastAPI dependencies for the forum.

Provides dependency injection for:
- Forum service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .exceptions import ForumError
from .service import ForumService


async def get_forum_service(request: Request) -> ForumService:
    """Get forum service from app state.

    Raises:
        HTTPException(503): Storage or Redis was unavailable at startup
    """
    app_state = request.app.state
    if not hasattr(app_state, "forum_service") or not app_state.forum_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Forum service not available",
        )
    return app_state.forum_service


# Type aliases for dependency injection
ForumServiceDep = Annotated[ForumService, Depends(get_forum_service)]


def handle_forum_error(error: ForumError) -> HTTPException:
    """Convert forum errors to HTTP exceptions.

    Args:
        error: Forum error

    Returns:
        HTTPException with appropriate status code
    """
    status_map = {
        "not_found": status.HTTP_404_NOT_FOUND,
        "forbidden": status.HTTP_403_FORBIDDEN,
        "validation_error": status.HTTP_400_BAD_REQUEST,
        "internal_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
