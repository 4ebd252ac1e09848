"""Request/response schemas for auth endpoints."""

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignupRequest(BaseModel):
    """New account credentials plus profile hints consumed by provisioning."""

    email: str = Field(..., min_length=3, max_length=320, description="Email address")
    password: str = Field(..., min_length=8, max_length=128, description="Password")
    username: str = Field(..., max_length=255, description="Desired username (3-20 chars)")
    avatar_url: str | None = Field(
        default=None, max_length=2048, description="Optional avatar URL"
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        local, sep, domain = v.partition("@")
        if not sep or not local or "." not in domain:
            raise ValueError("email must look like name@example.com")
        return v


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., min_length=3, max_length=320, description="Email address")
    password: str = Field(..., min_length=8, max_length=128, description="Password")


class TokenResponse(BaseModel):
    """JWT access token returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class CurrentUser(BaseModel):
    """Authenticated user (id, email) for dependency injection."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
