"""Pydantic schemas for post media."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import MediaType, PostMedia


# ==============================================================================
# Request Schemas
# ==============================================================================


class UploadUrlRequest(BaseModel):
    """File metadata sent before the client uploads to storage."""

    post_id: UUID
    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., min_length=1, description="MIME type")
    file_size: int = Field(..., gt=0, description="Size in bytes")


class CreateMediaRequest(BaseModel):
    """Media record registered after a successful upload."""

    post_id: UUID
    storage_path: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., min_length=1)
    size_bytes: int = Field(..., gt=0)


# ==============================================================================
# Response Schemas
# ==============================================================================


class UploadUrlResponse(BaseModel):
    upload_url: str
    storage_path: str
    expires_in: int = Field(..., description="Seconds the URL stays valid")


class MediaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID
    owner_id: UUID
    storage_path: str
    file_name: str
    mime_type: str
    media_type: MediaType | None
    size_bytes: int
    created_at: datetime

    @classmethod
    def from_media(cls, media: PostMedia) -> "MediaResponse":
        return cls.model_validate(media)


class MediaUrlResponse(BaseModel):
    media_id: UUID
    url: str
    expires_in: int


class MessageResponse(BaseModel):
    message: str
