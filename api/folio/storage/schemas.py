"""Pydantic schemas for storage operations."""

from pydantic import BaseModel, Field


class StorageConfigResponse(BaseModel):
    """Response model for storage configuration status."""

    configured: bool = Field(..., description="Whether storage is configured")
    bucket: str | None = Field(default=None, description="Storage bucket name")
    root: str = Field(..., description="Top-level folder for uploaded media")
    upload_url_expiry_seconds: int
    download_url_expiry_seconds: int
    allowed_types: list[str] = Field(..., description="Allowed MIME types")
    max_file_sizes: dict[str, int] = Field(
        ..., description="Maximum upload size in bytes per media category"
    )
