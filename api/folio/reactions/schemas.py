"""Pydantic schemas for reactions."""

from uuid import UUID

from pydantic import BaseModel, Field

from .models import ReactionType


class ToggleReactionRequest(BaseModel):
    reaction_type: ReactionType


class ReactionCount(BaseModel):
    reaction_type: ReactionType
    count: int = Field(..., ge=1)


class PostReactionsResponse(BaseModel):
    """Reaction totals for a post plus the caller's own reactions."""

    post_id: UUID
    counts: list[ReactionCount]
    user_reactions: list[ReactionType] = Field(default_factory=list)


class ToggleReactionResponse(BaseModel):
    post_id: UUID
    reaction_type: ReactionType
    active: bool
