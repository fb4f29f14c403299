"""Media service layer.

Upload flow:
1. The client asks for an upload URL with the file's name, type and size.
2. The metadata is validated and a signed PUT URL for a fresh storage path
   is returned.
3. The client uploads straight to Firebase Storage.
4. The client registers the upload, creating the media record.
"""

from pathlib import PurePosixPath
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import structlog

from folio.storage.service import StorageError

from .models import PostMedia, create_media, get_max_file_size, get_media_type
from .schemas import CreateMediaRequest, UploadUrlRequest, UploadUrlResponse


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from folio.posts.models import Post
    from folio.posts.service import PostService
    from folio.storage.service import FirebaseStorageService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class MediaError(Exception):
    """Base media error."""

    def __init__(self, message: str, code: str = "media_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class MediaNotFoundError(MediaError):
    def __init__(self, message: str = "Media not found"):
        super().__init__(message, "media_not_found")


class MediaPostNotFoundError(MediaError):
    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


class MediaPermissionDeniedError(MediaError):
    def __init__(self, message: str = "You can only manage media on your own posts"):
        super().__init__(message, "permission_denied")


class UnsupportedMediaTypeError(MediaError):
    def __init__(self, mime_type: str):
        super().__init__(f'File type "{mime_type}" is not allowed', "unsupported_media_type")


class MediaTooLargeError(MediaError):
    def __init__(self, max_size: int):
        super().__init__(
            f"File size exceeds {max_size // (1024 * 1024)} MB limit", "file_too_large"
        )


class InvalidStoragePathError(MediaError):
    def __init__(self, message: str = "Storage path does not belong to this post"):
        super().__init__(message, "invalid_storage_path")


def validate_file(mime_type: str, size_bytes: int) -> None:
    """Check a file's type and size against the per-category limits.

    Raises:
        UnsupportedMediaTypeError: If the MIME type is not allowed.
        MediaTooLargeError: If the file exceeds its category's limit.
    """
    if get_media_type(mime_type) is None:
        raise UnsupportedMediaTypeError(mime_type)

    max_size = get_max_file_size(mime_type)
    if size_bytes > max_size:
        raise MediaTooLargeError(max_size)


def generate_storage_path(user_id: UUID, post_id: UUID, file_name: str) -> str:
    """Build ``{user_id}/{post_id}/{uuid}.{ext}``; ``bin`` when there is no extension."""
    extension = PurePosixPath(file_name).suffix.lstrip(".").lower() or "bin"
    return f"{user_id}/{post_id}/{uuid4()}.{extension}"


# ==============================================================================
# Media Service
# ==============================================================================


class MediaService:
    """Media records for posts plus their stored files."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        posts: "PostService",
        storage: "FirebaseStorageService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.posts = posts
        self.storage = storage
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_media = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.post_media
            (media_id, post_id, owner_id, storage_path, file_name, mime_type,
             size_bytes, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_media_by_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.post_media_by_post
            (post_id, created_at, media_id, owner_id, storage_path, file_name,
             mime_type, size_bytes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_media = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.post_media WHERE media_id = ?
        """)

        self._get_media_by_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.post_media_by_post WHERE post_id = ?
        """)

        self._delete_media = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.post_media WHERE media_id = ?
        """)

        self._delete_media_by_post = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.post_media_by_post
            WHERE post_id = ? AND created_at = ? AND media_id = ?
        """)

        self._delete_post_media = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.post_media_by_post WHERE post_id = ?
        """)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _get_owned_post(self, post_id: UUID, user_id: UUID) -> "Post":
        post = await self.posts.find_post(post_id)
        if post is None or not post.is_visible_to(user_id):
            raise MediaPostNotFoundError
        if post.author_id != user_id:
            raise MediaPermissionDeniedError
        return post

    async def find_media(self, media_id: UUID) -> PostMedia | None:
        result = await self.session.aexecute(self._get_media, [media_id])
        row = result.one()
        return PostMedia.from_row(row) if row else None

    async def _remove_stored_file(self, storage_path: str) -> None:
        """Delete the stored object; failures are logged and swallowed."""
        try:
            await self.storage.delete_file(storage_path)
        except StorageError as e:
            logger.warning(
                "media_storage_delete_failed",
                storage_path=storage_path,
                error=e.message,
            )

    # ==========================================================================
    # Upload flow
    # ==========================================================================

    async def get_upload_url(
        self, user_id: UUID, data: UploadUrlRequest
    ) -> UploadUrlResponse:
        """Validate the file and sign an upload URL for a new storage path.

        Raises:
            UnsupportedMediaTypeError, MediaTooLargeError: Invalid file.
            MediaPostNotFoundError, MediaPermissionDeniedError: Not the
                caller's post.
            StorageError: If storage is not configured or signing fails.
        """
        validate_file(data.file_type, data.file_size)
        await self._get_owned_post(data.post_id, user_id)

        storage_path = generate_storage_path(user_id, data.post_id, data.file_name)
        expires_in = self.storage.settings.storage_upload_url_expiry_seconds
        upload_url = await self.storage.create_upload_url(
            storage_path, data.file_type, expires_in
        )

        return UploadUrlResponse(
            upload_url=upload_url, storage_path=storage_path, expires_in=expires_in
        )

    async def create_media_record(
        self, user_id: UUID, data: CreateMediaRequest
    ) -> PostMedia:
        """Register an uploaded file against its post.

        The storage path must sit under the caller's folder for that post,
        which is where ``get_upload_url`` put it.
        """
        validate_file(data.mime_type, data.size_bytes)
        await self._get_owned_post(data.post_id, user_id)

        if not data.storage_path.startswith(f"{user_id}/{data.post_id}/"):
            raise InvalidStoragePathError

        media = create_media(
            post_id=data.post_id,
            owner_id=user_id,
            storage_path=data.storage_path,
            file_name=data.file_name,
            mime_type=data.mime_type,
            size_bytes=data.size_bytes,
        )

        await self.session.aexecute(
            self._insert_media,
            [
                media.id,
                media.post_id,
                media.owner_id,
                media.storage_path,
                media.file_name,
                media.mime_type,
                media.size_bytes,
                media.created_at,
            ],
        )
        await self.session.aexecute(
            self._insert_media_by_post,
            [
                media.post_id,
                media.created_at,
                media.id,
                media.owner_id,
                media.storage_path,
                media.file_name,
                media.mime_type,
                media.size_bytes,
            ],
        )

        logger.info(
            "media_created",
            media_id=str(media.id),
            post_id=str(media.post_id),
            mime_type=media.mime_type,
            size_bytes=media.size_bytes,
        )
        return media

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_post_media(
        self, post_id: UUID, viewer_id: UUID | None = None
    ) -> list[PostMedia]:
        """Media of a post, oldest first.

        Hidden or missing posts and store errors all resolve to an empty list.
        """
        try:
            post = await self.posts.find_post(post_id)
            if post is None or not post.is_visible_to(viewer_id):
                return []
            rows = await self.session.aexecute(self._get_media_by_post, [post_id])
        except Exception as e:
            logger.warning("post_media_fetch_failed", post_id=str(post_id), error=str(e))
            return []

        return [PostMedia.from_row(row) for row in rows]

    async def get_media_url(
        self, storage_path: str, expires_in: int | None = None
    ) -> str | None:
        """Signed download URL for a stored file, or None if signing fails."""
        try:
            return await self.storage.create_download_url(storage_path, expires_in)
        except StorageError as e:
            logger.warning(
                "media_url_failed", storage_path=storage_path, error=e.message
            )
            return None

    async def get_visible_media(
        self, media_id: UUID, viewer_id: UUID | None
    ) -> PostMedia:
        """Media record whose post the viewer may see.

        Raises:
            MediaNotFoundError: If missing or attached to a hidden post.
        """
        media = await self.find_media(media_id)
        if media is None:
            raise MediaNotFoundError

        post = await self.posts.find_post(media.post_id)
        if post is None or not post.is_visible_to(viewer_id):
            raise MediaNotFoundError
        return media

    # ==========================================================================
    # Deletes
    # ==========================================================================

    async def delete_media(self, media_id: UUID, user_id: UUID) -> None:
        """Delete a media record and its stored file; owner only.

        A failed storage delete does not stop the record from being removed.
        """
        media = await self.find_media(media_id)
        if media is None:
            raise MediaNotFoundError
        if media.owner_id != user_id:
            raise MediaPermissionDeniedError

        await self._remove_stored_file(media.storage_path)

        await self.session.aexecute(
            self._delete_media_by_post, [media.post_id, media.created_at, media.id]
        )
        await self.session.aexecute(self._delete_media, [media.id])

        logger.info("media_deleted", media_id=str(media_id), post_id=str(media.post_id))

    async def delete_for_post(self, post_id: UUID) -> None:
        """Remove every media record and stored file of a post."""
        rows = await self.session.aexecute(self._get_media_by_post, [post_id])
        media = [PostMedia.from_row(row) for row in rows]

        for item in media:
            await self._remove_stored_file(item.storage_path)
            await self.session.aexecute(self._delete_media, [item.id])
        await self.session.aexecute(self._delete_post_media, [post_id])

        logger.info("post_media_deleted", post_id=str(post_id), count=len(media))
