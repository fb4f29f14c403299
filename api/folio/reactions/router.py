"""Reaction API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from folio.auth.dependencies import CurrentUser, OptionalUser
from folio.core.rate_limit import RateLimited

from .dependencies import ReactionServiceDep, handle_reaction_error
from .schemas import PostReactionsResponse, ToggleReactionRequest, ToggleReactionResponse
from .service import ReactionError


router = APIRouter(prefix="/v1/reactions", tags=["reactions"])


@router.get(
    "/post/{post_id}",
    response_model=PostReactionsResponse,
    summary="Get post reactions",
)
async def get_post_reactions(
    post_id: UUID,
    reaction_service: ReactionServiceDep,
    user: OptionalUser,
) -> PostReactionsResponse:
    """Reaction counts; ``user_reactions`` is empty for anonymous callers."""
    counts = await reaction_service.get_post_reactions(post_id)
    mine = await reaction_service.get_user_reactions(post_id, user.id if user else None)
    return PostReactionsResponse(post_id=post_id, counts=counts, user_reactions=mine)


@router.post(
    "/post/{post_id}/toggle",
    response_model=ToggleReactionResponse,
    summary="Toggle reaction",
)
async def toggle_reaction(
    post_id: UUID,
    data: ToggleReactionRequest,
    reaction_service: ReactionServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> ToggleReactionResponse:
    try:
        active = await reaction_service.toggle_reaction(
            post_id, user.id, data.reaction_type
        )
    except ReactionError as e:
        raise handle_reaction_error(e) from e

    return ToggleReactionResponse(
        post_id=post_id, reaction_type=data.reaction_type, active=active
    )
