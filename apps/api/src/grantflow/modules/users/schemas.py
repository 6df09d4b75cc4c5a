"""
User Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from grantflow.modules.projects.schemas import ProjectCreate
from grantflow.modules.validations.helpers import missing_placeholders

USERNAME_PATTERN = r"^[a-zA-Z0-9][a-zA-Z0-9._-]{1,48}$"
PASSWORD_MIN_LENGTH = 8


class ValidationUrlMixin(BaseModel):
    """Adds the client-supplied link template for the emailed token."""

    validation_url: str = Field(
        ...,
        max_length=500,
        description="Link template containing {{token}} and {{id}}, optionally {{type}}",
    )

    @field_validator("validation_url")
    @classmethod
    def check_placeholders(cls, value: str) -> str:
        missing = missing_placeholders(value)
        if missing:
            raise ValueError(f"validation_url must contain {', '.join(missing)}")
        return value


class UserRegister(ValidationUrlMixin):
    """Request body for POST /users/register."""

    username: str = Field(..., pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=200)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    project: ProjectCreate | None = None


class PasswordResetRequest(ValidationUrlMixin):
    """Request body for POST /users/password-reset."""

    email: EmailStr


class EmailChangeRequest(ValidationUrlMixin):
    """Request body for POST /users/me/email-change."""

    email: EmailStr


class UserResponse(BaseModel):
    """User as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    roles: list[str]
    is_active: bool
    is_validated: bool
    created_at: datetime


class MessageResponse(BaseModel):
    success: bool = True
    message: str
