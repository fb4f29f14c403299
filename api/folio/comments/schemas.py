"""Pydantic schemas for comments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from folio.profiles.schemas import AuthorSummary

from .models import Comment
from .threads import CommentThread


CONTENT_MAX_LENGTH = 5000


def _strip_content(v: str) -> str:
    v = v.strip()
    if not v:
        msg = "Comment cannot be empty"
        raise ValueError(msg)
    return v


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(BaseModel):
    """Request to create a comment or a reply."""

    post_id: UUID
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)
    parent_comment_id: UUID | None = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_content(v)


class UpdateCommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_content(v)


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(BaseModel):
    """Comment with joined author profile."""

    id: UUID
    post_id: UUID
    author_id: UUID
    parent_comment_id: UUID | None = None
    content: str
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary | None = None

    @classmethod
    def from_comment(
        cls, comment: Comment, author: AuthorSummary | None = None
    ) -> "CommentResponse":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            author_id=comment.author_id,
            parent_comment_id=comment.parent_comment_id,
            content=comment.content,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            author=author,
        )


class CommentThreadResponse(CommentResponse):
    """Comment with nested replies. Top-level comments have depth 0."""

    depth: int = 0
    replies: list["CommentThreadResponse"] = Field(default_factory=list)


class CommentCountResponse(BaseModel):
    post_id: UUID
    count: int


class MessageResponse(BaseModel):
    message: str


def threads_to_response(
    threads: list[CommentThread[CommentResponse]],
) -> list[CommentThreadResponse]:
    """Convert builder output to nested responses, annotating depth."""
    roots: list[CommentThreadResponse] = []
    stack = [(node, 0, roots) for node in reversed(threads)]
    while stack:
        node, depth, siblings = stack.pop()
        response = CommentThreadResponse(
            **node.comment.model_dump(), depth=depth, replies=[]
        )
        siblings.append(response)
        stack.extend((child, depth + 1, response.replies) for child in reversed(node.replies))
    return roots
