"""Authentication schemas."""

from pydantic import Field

from peerstudy.schemas.base import BaseSchema
from peerstudy.schemas.user import UserRead


class TokenResponse(BaseSchema):
    """Response schema for successful authentication."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiry in seconds")
    user: UserRead
