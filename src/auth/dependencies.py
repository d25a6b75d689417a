"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from JWT
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from src.auth.schemas import AuthenticatedUser, TokenPayload
from src.auth.security import decode_access_token
from src.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Args:
        request: FastAPI request

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser:
    """Get current authenticated user from JWT token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = TokenPayload(**decode_access_token(token))
    except (JWTError, ValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    # Set user_id in context for logging
    set_user_id(payload.sub)

    return payload.to_user()


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
