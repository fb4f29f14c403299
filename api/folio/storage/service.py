"""Firebase Storage service for post media.

Files never pass through the API. Clients receive a short-lived signed PUT
URL, upload straight to the bucket, and later read through signed GET URLs.
Every object lives under ``settings.storage_root``.
"""

from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import structlog


if TYPE_CHECKING:
    from google.cloud.storage import Bucket

from folio.config.settings import Settings


logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """Base error for storage operations."""

    def __init__(self, message: str, code: str = "storage_error") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class StorageNotConfiguredError(StorageError):
    """Error when Firebase Storage is not configured."""

    def __init__(self, message: str = "Firebase Storage is not configured") -> None:
        super().__init__(message, "storage_not_configured")


class StorageOperationError(StorageError):
    """Error while signing, inspecting or deleting an object."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "storage_operation_failed")


# Firebase app singleton
_firebase_app = None
_storage_bucket: "Bucket | None" = None


def _init_firebase(settings: Settings) -> "Bucket":
    """Initialize Firebase Admin SDK and get storage bucket.

    Raises:
        StorageNotConfiguredError: If Firebase is not configured.
    """
    global _firebase_app, _storage_bucket  # noqa: PLW0603

    if _storage_bucket is not None:
        return _storage_bucket

    if not settings.firebase_configured:
        raise StorageNotConfiguredError

    # Lazy import to avoid loading Firebase SDK unless needed
    import firebase_admin  # noqa: PLC0415
    from firebase_admin import credentials, storage  # noqa: PLC0415

    creds_path = settings.firebase_credentials_path
    if creds_path and not Path(creds_path).is_absolute():
        api_root = Path(__file__).parent.parent.parent
        creds_path = str(api_root / creds_path)

    if not creds_path or not Path(creds_path).exists():
        raise StorageNotConfiguredError(
            f"Firebase credentials file not found: {creds_path}"
        )

    try:
        if _firebase_app is None:
            cred = credentials.Certificate(creds_path)
            _firebase_app = firebase_admin.initialize_app(
                cred,
                {
                    "storageBucket": settings.firebase_storage_bucket,
                    "projectId": settings.firebase_project_id,
                },
            )
            logger.info(
                "firebase_initialized",
                project_id=settings.firebase_project_id,
                bucket=settings.firebase_storage_bucket,
            )

        _storage_bucket = storage.bucket()
        return _storage_bucket

    except Exception as e:
        logger.exception("firebase_init_failed", error=str(e))
        raise StorageNotConfiguredError(f"Failed to initialize Firebase: {e}") from e


class FirebaseStorageService:
    """Signed URL issuance and object removal in Firebase Storage."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._bucket: Bucket | None = None

    @property
    def is_configured(self) -> bool:
        return self.settings.firebase_configured

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            raise StorageNotConfiguredError

    def _get_bucket(self) -> "Bucket":
        """Get Firebase Storage bucket (lazy initialization)."""
        if self._bucket is None:
            self._bucket = _init_firebase(self.settings)
        return self._bucket

    def object_name(self, storage_path: str) -> str:
        """Bucket object name for a media storage path."""
        return f"{self.settings.storage_root}/{storage_path.lstrip('/')}"

    async def create_upload_url(
        self,
        storage_path: str,
        content_type: str,
        expires_in: int | None = None,
    ) -> str:
        """Sign a PUT URL the client uploads ``storage_path`` with.

        The signature covers ``content_type``; uploads sent with another
        Content-Type header are rejected by Cloud Storage.

        Raises:
            StorageNotConfiguredError: If Firebase is not configured.
            StorageOperationError: If signing fails.
        """
        self._ensure_configured()
        expires_in = expires_in or self.settings.storage_upload_url_expiry_seconds

        try:
            blob = self._get_bucket().blob(self.object_name(storage_path))
            url = blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=expires_in),
                method="PUT",
                content_type=content_type,
            )
        except StorageError:
            raise
        except Exception as e:
            logger.exception("upload_url_failed", storage_path=storage_path, error=str(e))
            raise StorageOperationError(f"Failed to prepare file upload: {e}") from e

        logger.info(
            "upload_url_created",
            storage_path=storage_path,
            content_type=content_type,
            expires_in=expires_in,
        )
        return url

    async def create_download_url(
        self, storage_path: str, expires_in: int | None = None
    ) -> str:
        """Sign a GET URL for a stored object.

        Raises:
            StorageNotConfiguredError: If Firebase is not configured.
            StorageOperationError: If signing fails.
        """
        self._ensure_configured()
        expires_in = expires_in or self.settings.storage_download_url_expiry_seconds

        try:
            blob = self._get_bucket().blob(self.object_name(storage_path))
            return blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=expires_in),
                method="GET",
            )
        except StorageError:
            raise
        except Exception as e:
            logger.exception(
                "download_url_failed", storage_path=storage_path, error=str(e)
            )
            raise StorageOperationError(f"Failed to sign download URL: {e}") from e

    async def delete_file(self, storage_path: str) -> bool:
        """Delete a file from Firebase Storage.

        Returns:
            True if deleted, False if not found.

        Raises:
            StorageNotConfiguredError: If Firebase is not configured.
            StorageOperationError: If the delete call fails.
        """
        self._ensure_configured()

        try:
            blob = self._get_bucket().blob(self.object_name(storage_path))

            if not blob.exists():
                logger.warning("delete_file_not_found", storage_path=storage_path)
                return False

            blob.delete()
            logger.info("file_deleted", storage_path=storage_path)
            return True

        except StorageError:
            raise
        except Exception as e:
            logger.exception("delete_failed", storage_path=storage_path, error=str(e))
            raise StorageOperationError(f"Failed to delete file: {e}") from e
