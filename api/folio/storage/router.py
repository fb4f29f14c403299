"""Router for storage endpoints."""

from fastapi import APIRouter

from folio.media.models import ALL_ALLOWED_MIME_TYPES, MAX_FILE_SIZES

from .dependencies import StorageServiceDep
from .schemas import StorageConfigResponse


router = APIRouter(prefix="/v1/storage", tags=["storage"])


@router.get(
    "/config",
    response_model=StorageConfigResponse,
    summary="Get storage configuration",
    description="Returns current storage configuration status and upload limits.",
)
async def get_storage_config(storage: StorageServiceDep) -> StorageConfigResponse:
    settings = storage.settings
    return StorageConfigResponse(
        configured=storage.is_configured,
        bucket=settings.firebase_storage_bucket if storage.is_configured else None,
        root=settings.storage_root,
        upload_url_expiry_seconds=settings.storage_upload_url_expiry_seconds,
        download_url_expiry_seconds=settings.storage_download_url_expiry_seconds,
        allowed_types=list(ALL_ALLOWED_MIME_TYPES),
        max_file_sizes={
            category.value: size for category, size in MAX_FILE_SIZES.items()
        },
    )
