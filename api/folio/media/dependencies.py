"""FastAPI dependencies for media."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import MediaError, MediaService


async def get_media_service(request: Request) -> MediaService:
    service = getattr(request.app.state, "media_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Media service not available",
        )
    return service


MediaServiceDep = Annotated[MediaService, Depends(get_media_service)]


def handle_media_error(error: MediaError) -> HTTPException:
    """Convert media errors to HTTP exceptions."""
    status_map = {
        "media_not_found": status.HTTP_404_NOT_FOUND,
        "post_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "unsupported_media_type": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        "file_too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        "invalid_storage_path": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
