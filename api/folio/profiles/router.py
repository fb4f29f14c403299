"""Profile API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from folio.auth.dependencies import CurrentUser
from folio.core.rate_limit import RateLimited

from .dependencies import ProfileServiceDep, handle_profile_error
from .schemas import ProfileResponse, UpdateProfileRequest
from .service import ProfileError, ProfileNotFoundError


router = APIRouter(prefix="/v1/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse, summary="Get my profile")
async def get_my_profile(
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> ProfileResponse:
    """Return the caller's profile, creating it on first use."""
    profile = await profile_service.ensure_profile_exists(user)
    return ProfileResponse.model_validate(profile)


@router.patch("/me", response_model=ProfileResponse, summary="Update my profile")
async def update_my_profile(
    data: UpdateProfileRequest,
    profile_service: ProfileServiceDep,
    user: CurrentUser,
    _rate_limit: RateLimited,
) -> ProfileResponse:
    await profile_service.ensure_profile_exists(user)
    try:
        profile = await profile_service.update_profile(user.id, data)
    except ProfileError as e:
        raise handle_profile_error(e) from e
    return ProfileResponse.model_validate(profile)


@router.get("/{user_id}", response_model=ProfileResponse, summary="Get profile")
async def get_profile(
    user_id: UUID,
    profile_service: ProfileServiceDep,
) -> ProfileResponse:
    profile = await profile_service.get_profile(user_id)
    if not profile:
        raise handle_profile_error(ProfileNotFoundError())
    return ProfileResponse.model_validate(profile)
