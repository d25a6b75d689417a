"""JWT access token handling.

Tokens are issued by the Read Master identity service and only verified
here. ``create_access_token`` mints tokens with the same claims for local
development and tests.

Claims:
- sub: user ID
- tier: subscription tier (FREE / PRO / SCHOLAR)
- role: user / moderator / admin
- username, display_name, avatar_url: author display fields
- type: "access"
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from src.config.settings import get_settings


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Payload data (typically {"sub": user_id, "tier": tier, "role": role})
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT string
    """
    settings = get_settings()

    to_encode = data.copy()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )

    to_encode.update(
        {
            "exp": expire,
            "iat": datetime.now(UTC),
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates:
    - JWT signature
    - Expiration time
    - Token type == "access"
    - Presence of the sub claim

    Raises:
        JWTError: If token is invalid, expired, or wrong type
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    if not payload.get("sub"):
        msg = "Access token missing sub claim"
        raise JWTError(msg)

    return payload
