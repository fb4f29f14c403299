"""Comment API endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, status

from folio.auth.dependencies import CurrentUser, OptionalUser
from folio.core.rate_limit import RateLimited

from .dependencies import CommentServiceDep, handle_comment_error
from .schemas import (
    CommentCountResponse,
    CommentResponse,
    CommentThreadResponse,
    CreateCommentRequest,
    MessageResponse,
    UpdateCommentRequest,
)
from .service import CommentError


logger = structlog.get_logger(__name__)


router = APIRouter(prefix="/v1/comments", tags=["comments"])


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
)
async def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> CommentResponse:
    """Comment on a published post, optionally as a reply."""
    try:
        return await comment_service.create_comment(user, data)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.get(
    "/post/{post_id}",
    response_model=list[CommentThreadResponse],
    summary="List comments as threads",
)
async def list_threaded_comments(
    post_id: UUID,
    comment_service: CommentServiceDep,
    user: OptionalUser,
) -> list[CommentThreadResponse]:
    """Top-level comments in creation order, each with nested replies."""
    return await comment_service.get_threaded_comments(post_id, user.id if user else None)


@router.get(
    "/post/{post_id}/flat",
    response_model=list[CommentResponse],
    summary="List comments",
)
async def list_comments(
    post_id: UUID,
    comment_service: CommentServiceDep,
    user: OptionalUser,
) -> list[CommentResponse]:
    return await comment_service.get_comments(post_id, user.id if user else None)


@router.get(
    "/post/{post_id}/count",
    response_model=CommentCountResponse,
    summary="Count comments",
)
async def count_comments(
    post_id: UUID,
    comment_service: CommentServiceDep,
    user: OptionalUser,
) -> CommentCountResponse:
    viewer_id = user.id if user else None
    count = await comment_service.get_comment_count(post_id, viewer_id)
    return CommentCountResponse(post_id=post_id, count=count)


@router.patch(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Update comment",
)
async def update_comment(
    comment_id: UUID,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> CommentResponse:
    try:
        return await comment_service.update_comment(comment_id, user.id, data.content)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> MessageResponse:
    """Delete a comment together with its replies."""
    try:
        removed = await comment_service.delete_comment(comment_id, user.id)
    except CommentError as e:
        raise handle_comment_error(e) from e

    logger.debug("comment_delete_cascade", comment_id=str(comment_id), removed=removed)
    return MessageResponse(message="Comment deleted")
