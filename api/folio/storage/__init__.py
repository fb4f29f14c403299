"""Storage module: signed upload and download URLs for Firebase Storage."""

from .service import (
    FirebaseStorageService,
    StorageError,
    StorageNotConfiguredError,
    StorageOperationError,
)


__all__ = [
    "FirebaseStorageService",
    "StorageError",
    "StorageNotConfiguredError",
    "StorageOperationError",
]
