"""FastAPI dependencies for profiles."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ProfileError, ProfileService


async def get_profile_service(request: Request) -> ProfileService:
    service = getattr(request.app.state, "profile_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Profile service not available",
        )
    return service


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]


def handle_profile_error(error: ProfileError) -> HTTPException:
    status_map = {
        "profile_not_found": status.HTTP_404_NOT_FOUND,
        "username_taken": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
