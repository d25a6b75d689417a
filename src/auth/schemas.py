"""Pydantic schemas for authentication."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.auth.permissions import UserRole
from src.forum.tiers import UserTier


class AuthenticatedUser(BaseModel):
    """Caller resolved from the access token."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    tier: str = UserTier.FREE.value
    role: str = UserRole.USER.value


# ==============================================================================
# Internal Schemas (not exposed in API)
# ==============================================================================


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # User ID
    tier: str = UserTier.FREE.value
    role: str = UserRole.USER.value
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    exp: datetime
    iat: datetime | None = None
    type: str = Field(default="access")

    def to_user(self) -> AuthenticatedUser:
        return AuthenticatedUser(
            id=self.sub,
            username=self.username,
            display_name=self.display_name,
            avatar_url=self.avatar_url,
            tier=self.tier,
            role=self.role,
        )
