"""Pydantic schemas for posts."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from folio.profiles.schemas import AuthorSummary

from .models import Post, PostCategory, PostStatus


TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 50_000


def _strip_title(v: str) -> str:
    v = v.strip()
    if not v:
        msg = "Title is required"
        raise ValueError(msg)
    return v


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreatePostRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)
    category: PostCategory = PostCategory.POST
    status: PostStatus = PostStatus.DRAFT

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _strip_title(v)


class UpdatePostRequest(BaseModel):
    """Partial update. Omitted fields keep their current value."""

    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str | None = Field(None, min_length=1, max_length=CONTENT_MAX_LENGTH)
    category: PostCategory | None = None
    status: PostStatus | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return _strip_title(v) if v is not None else None


# ==============================================================================
# Response Schemas
# ==============================================================================


class PostResponse(BaseModel):
    id: UUID
    author_id: UUID
    title: str
    content: str
    category: PostCategory
    status: PostStatus
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary | None = None

    @classmethod
    def from_post(cls, post: Post, author: AuthorSummary | None = None) -> "PostResponse":
        return cls(
            id=post.id,
            author_id=post.author_id,
            title=post.title,
            content=post.content,
            category=post.category,
            status=post.status,
            created_at=post.created_at,
            updated_at=post.updated_at,
            author=author,
        )


class PostListResponse(BaseModel):
    """One page of posts. ``next_cursor`` is null exactly when ``has_more`` is false."""

    data: list[PostResponse] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


class MessageResponse(BaseModel):
    message: str
