"""Authenticated user model built from token claims."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class AuthUser(BaseModel):
    """The caller as described by their access token."""

    id: UUID
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "AuthUser":
        return cls(
            id=claims["sub"],
            email=claims.get("email"),
            user_metadata=claims.get("user_metadata") or {},
        )
