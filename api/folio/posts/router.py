"""Post API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from folio.auth.dependencies import CurrentUser, OptionalUser
from folio.core.rate_limit import RateLimited

from .dependencies import PageLimit, PostServiceDep, handle_post_error
from .schemas import (
    CreatePostRequest,
    MessageResponse,
    PostListResponse,
    PostResponse,
    UpdatePostRequest,
)
from .service import PostError


router = APIRouter(prefix="/v1/posts", tags=["posts"])


@router.get("", response_model=PostListResponse, summary="Published feed")
async def list_posts(
    post_service: PostServiceDep,
    limit: PageLimit,
    cursor: str | None = Query(None, description="Cursor from the previous page"),
) -> PostListResponse:
    """Published posts, newest first. Follow ``next_cursor`` for more."""
    return await post_service.get_posts(cursor=cursor, limit=limit)


@router.get("/me", response_model=PostListResponse, summary="My posts")
async def list_my_posts(
    post_service: PostServiceDep,
    user: OptionalUser,
    limit: PageLimit,
    cursor: str | None = Query(None),
) -> PostListResponse:
    """The caller's posts including drafts. Anonymous callers get an empty page."""
    return await post_service.get_my_posts(
        user.id if user else None, cursor=cursor, limit=limit
    )


@router.get("/{post_id}", response_model=PostResponse, summary="Get post")
async def get_post(
    post_id: UUID,
    post_service: PostServiceDep,
    user: OptionalUser,
) -> PostResponse:
    try:
        return await post_service.get_post(post_id, user.id if user else None)
    except PostError as e:
        raise handle_post_error(e) from e


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    data: CreatePostRequest,
    post_service: PostServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> PostResponse:
    post = await post_service.create_post(user, data)
    return PostResponse.from_post(post)


@router.patch("/{post_id}", response_model=PostResponse, summary="Update post")
async def update_post(
    post_id: UUID,
    data: UpdatePostRequest,
    post_service: PostServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> PostResponse:
    try:
        post = await post_service.update_post(post_id, user.id, data)
    except PostError as e:
        raise handle_post_error(e) from e
    return PostResponse.from_post(post)


@router.delete("/{post_id}", response_model=MessageResponse, summary="Delete post")
async def delete_post(
    post_id: UUID,
    post_service: PostServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> MessageResponse:
    """Delete a post with its comments, reactions and media."""
    try:
        await post_service.delete_post(post_id, user.id)
    except PostError as e:
        raise handle_post_error(e) from e
    return MessageResponse(message="Post deleted")


@router.post("/{post_id}/publish", response_model=PostResponse, summary="Publish")
async def publish_post(
    post_id: UUID,
    post_service: PostServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> PostResponse:
    try:
        post = await post_service.publish_post(post_id, user.id)
    except PostError as e:
        raise handle_post_error(e) from e
    return PostResponse.from_post(post)


@router.post("/{post_id}/unpublish", response_model=PostResponse, summary="Unpublish")
async def unpublish_post(
    post_id: UUID,
    post_service: PostServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> PostResponse:
    try:
        post = await post_service.unpublish_post(post_id, user.id)
    except PostError as e:
        raise handle_post_error(e) from e
    return PostResponse.from_post(post)
