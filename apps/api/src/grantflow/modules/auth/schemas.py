"""Authentication schemas."""

from pydantic import BaseModel, Field

from grantflow.modules.users.schemas import UserResponse


class LoginRequest(BaseModel):
    """Login request schema. ``login`` is a username or an email."""

    login: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Login response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
