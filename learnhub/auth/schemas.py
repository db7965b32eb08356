"""Pydantic schemas for authentication endpoints.

Request validation and response serialization for:
- Registration and login
- Admin user management
- Token responses
"""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from learnhub.auth.permissions import UserRole
from learnhub.core.schemas import CamelModel


def _validate_password_strength(value: str) -> str:
    """Require at least one letter and one digit."""
    if not any(c.isalpha() for c in value):
        msg = "Password must contain at least one letter"
        raise ValueError(msg)
    if not any(c.isdigit() for c in value):
        msg = "Password must contain at least one digit"
        raise ValueError(msg)
    return value


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(CamelModel):
    """User registration request."""

    email: EmailStr = Field(..., description="Email address")
    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    password: str = Field(..., min_length=8, description="Password")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)


class LoginRequest(CamelModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class AdminCreateUserRequest(CamelModel):
    """Admin request to create a user with an explicit role."""

    email: EmailStr = Field(..., description="Email address")
    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    password: str = Field(..., min_length=8, description="Password")
    role: UserRole = Field(default=UserRole.STUDENT, description="User role")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(CamelModel):
    """User data in responses."""

    id: UUID
    email: str
    name: str
    role: UserRole
    is_active: bool = True
    created_at: datetime | None = None


class UserListResponse(CamelModel):
    """List of users (admin)."""

    items: list[UserResponse]
    total: int


class TokenResponse(CamelModel):
    """Access token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiration in seconds")
