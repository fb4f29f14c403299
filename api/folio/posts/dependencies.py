"""FastAPI dependencies for posts."""

from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, status

from folio.config import get_settings

from .service import PostError, PostService


async def get_post_service(request: Request) -> PostService:
    service = getattr(request.app.state, "post_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Post service not available",
        )
    return service


PostServiceDep = Annotated[PostService, Depends(get_post_service)]


def page_limit(
    limit: Annotated[int | None, Query(ge=1, description="Page size")] = None,
) -> int:
    """Page size from the query string, defaulted and capped by settings."""
    settings = get_settings()
    if limit is None:
        return settings.pagination_default_limit
    if limit > settings.pagination_max_limit:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Limit cannot exceed {settings.pagination_max_limit}",
        )
    return limit


PageLimit = Annotated[int, Depends(page_limit)]


def handle_post_error(error: PostError) -> HTTPException:
    """Convert post errors to HTTP exceptions."""
    status_map = {
        "post_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
