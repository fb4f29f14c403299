"""Database models for post media.

Media files live in Firebase Storage under ``{user_id}/{post_id}/{uuid}.{ext}``;
these tables only hold the metadata linking a stored object to its post.

- ``post_media``: lookup by id (ownership checks, deletes).
- ``post_media_by_post``: media of a post in upload order.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from folio.utils.timestamps import as_utc, utc_now


class MediaType(str, Enum):
    """Media category derived from the MIME type."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


ALLOWED_MIME_TYPES: dict[MediaType, tuple[str, ...]] = {
    MediaType.IMAGE: ("image/jpeg", "image/png", "image/gif", "image/webp"),
    MediaType.VIDEO: ("video/mp4", "video/webm"),
    MediaType.AUDIO: ("audio/mpeg", "audio/wav", "audio/ogg"),
    MediaType.DOCUMENT: ("application/pdf",),
}

ALL_ALLOWED_MIME_TYPES: tuple[str, ...] = tuple(
    mime for mimes in ALLOWED_MIME_TYPES.values() for mime in mimes
)

MIME_TO_MEDIA_TYPE: dict[str, MediaType] = {
    mime: media_type
    for media_type, mimes in ALLOWED_MIME_TYPES.items()
    for mime in mimes
}

MB = 1024 * 1024

MAX_FILE_SIZES: dict[MediaType, int] = {
    MediaType.IMAGE: 5 * MB,
    MediaType.VIDEO: 50 * MB,
    MediaType.AUDIO: 10 * MB,
    MediaType.DOCUMENT: 10 * MB,
}


def get_media_type(mime_type: str) -> MediaType | None:
    return MIME_TO_MEDIA_TYPE.get(mime_type)


def get_max_file_size(mime_type: str) -> int:
    """Size limit in bytes for ``mime_type``; 0 for disallowed types."""
    media_type = get_media_type(mime_type)
    if media_type is None:
        return 0
    return MAX_FILE_SIZES[media_type]


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POST_MEDIA_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_media (
    media_id UUID PRIMARY KEY,
    post_id UUID,
    owner_id UUID,
    storage_path TEXT,
    file_name TEXT,
    mime_type TEXT,
    size_bytes BIGINT,
    created_at TIMESTAMP
)
"""

POST_MEDIA_BY_POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_media_by_post (
    post_id UUID,
    created_at TIMESTAMP,
    media_id UUID,
    owner_id UUID,
    storage_path TEXT,
    file_name TEXT,
    mime_type TEXT,
    size_bytes BIGINT,
    PRIMARY KEY ((post_id), created_at, media_id)
) WITH CLUSTERING ORDER BY (created_at ASC, media_id ASC)
"""

MEDIA_TABLES_CQL = [
    POST_MEDIA_TABLE_CQL,
    POST_MEDIA_BY_POST_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


@dataclass
class PostMedia:
    """Metadata of an uploaded media file."""

    id: UUID
    post_id: UUID
    owner_id: UUID
    storage_path: str
    file_name: str
    mime_type: str
    size_bytes: int
    created_at: datetime

    @property
    def media_type(self) -> MediaType | None:
        return get_media_type(self.mime_type)

    @classmethod
    def from_row(cls, row: Any) -> "PostMedia":
        return cls(
            id=row.media_id,
            post_id=row.post_id,
            owner_id=row.owner_id,
            storage_path=row.storage_path,
            file_name=row.file_name,
            mime_type=row.mime_type,
            size_bytes=row.size_bytes,
            created_at=as_utc(row.created_at),
        )


def create_media(
    post_id: UUID,
    owner_id: UUID,
    storage_path: str,
    file_name: str,
    mime_type: str,
    size_bytes: int,
) -> PostMedia:
    return PostMedia(
        id=uuid4(),
        post_id=post_id,
        owner_id=owner_id,
        storage_path=storage_path,
        file_name=file_name,
        mime_type=mime_type,
        size_bytes=size_bytes,
        created_at=utc_now(),
    )
