"""Pydantic schemas for profiles."""

import re
from datetime import datetime
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator

from .models import Profile


USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")


class AuthorSummary(BaseModel):
    """Public author fields joined onto posts and comments."""

    id: UUID
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "AuthorSummary":
        return cls(
            id=profile.id,
            username=profile.username,
            display_name=profile.display_name,
            avatar_url=profile.avatar_url,
        )


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str | None
    display_name: str | None
    avatar_url: str | None
    bio: str | None
    created_at: datetime
    updated_at: datetime


class UpdateProfileRequest(BaseModel):
    """Partial profile update. Omitted fields are left unchanged."""

    username: str | None = Field(None, min_length=3, max_length=30)
    display_name: str | None = Field(None, max_length=100)
    avatar_url: AnyHttpUrl | None = None
    bio: str | None = Field(None, max_length=500)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        if v is not None and not USERNAME_PATTERN.match(v):
            msg = "Username can only contain letters, numbers, and underscores"
            raise ValueError(msg)
        return v
