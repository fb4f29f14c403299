"""Media API endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, status

from folio.auth.dependencies import CurrentUser, OptionalUser
from folio.core.rate_limit import RateLimited
from folio.storage.dependencies import handle_storage_error
from folio.storage.service import StorageError

from .dependencies import MediaServiceDep, handle_media_error
from .schemas import (
    CreateMediaRequest,
    MediaResponse,
    MediaUrlResponse,
    MessageResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from .service import MediaError


logger = structlog.get_logger(__name__)


router = APIRouter(prefix="/v1/media", tags=["media"])


@router.post(
    "/upload-url",
    response_model=UploadUrlResponse,
    summary="Request upload URL",
)
async def create_upload_url(
    data: UploadUrlRequest,
    media_service: MediaServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> UploadUrlResponse:
    """Validate file metadata and return a short-lived signed upload URL."""
    logger.info(
        "upload_url_request",
        post_id=str(data.post_id),
        file_type=data.file_type,
        file_size=data.file_size,
    )
    try:
        return await media_service.get_upload_url(user.id, data)
    except MediaError as e:
        raise handle_media_error(e) from e
    except StorageError as e:
        raise handle_storage_error(e) from e


@router.post(
    "",
    response_model=MediaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register uploaded media",
)
async def create_media(
    data: CreateMediaRequest,
    media_service: MediaServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> MediaResponse:
    try:
        media = await media_service.create_media_record(user.id, data)
    except MediaError as e:
        raise handle_media_error(e) from e
    return MediaResponse.from_media(media)


@router.get(
    "/post/{post_id}",
    response_model=list[MediaResponse],
    summary="List post media",
)
async def list_post_media(
    post_id: UUID,
    media_service: MediaServiceDep,
    user: OptionalUser,
) -> list[MediaResponse]:
    media = await media_service.get_post_media(post_id, user.id if user else None)
    return [MediaResponse.from_media(item) for item in media]


@router.get(
    "/{media_id}/url",
    response_model=MediaUrlResponse,
    summary="Get signed download URL",
)
async def get_media_url(
    media_id: UUID,
    media_service: MediaServiceDep,
    user: OptionalUser,
) -> MediaUrlResponse:
    try:
        media = await media_service.get_visible_media(media_id, user.id if user else None)
    except MediaError as e:
        raise handle_media_error(e) from e

    expires_in = media_service.storage.settings.storage_download_url_expiry_seconds
    url = await media_service.get_media_url(media.storage_path, expires_in)
    if url is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Media URL is not available",
        )
    return MediaUrlResponse(media_id=media.id, url=url, expires_in=expires_in)


@router.delete(
    "/{media_id}",
    response_model=MessageResponse,
    summary="Delete media",
)
async def delete_media(
    media_id: UUID,
    media_service: MediaServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> MessageResponse:
    try:
        await media_service.delete_media(media_id, user.id)
    except MediaError as e:
        raise handle_media_error(e) from e
    return MessageResponse(message="Media deleted")
