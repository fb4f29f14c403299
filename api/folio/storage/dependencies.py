"""Dependencies for storage module."""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from folio.config.settings import Settings, get_settings

from .service import FirebaseStorageService, StorageError


# Storage service singleton
_storage_service: FirebaseStorageService | None = None


def get_storage_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FirebaseStorageService:
    """Get storage service instance (singleton)."""
    global _storage_service  # noqa: PLW0603

    if _storage_service is None:
        _storage_service = FirebaseStorageService(settings)

    return _storage_service


StorageServiceDep = Annotated[FirebaseStorageService, Depends(get_storage_service)]


def handle_storage_error(error: StorageError) -> HTTPException:
    status_map = {
        "storage_not_configured": status.HTTP_503_SERVICE_UNAVAILABLE,
        "storage_operation_failed": status.HTTP_502_BAD_GATEWAY,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
