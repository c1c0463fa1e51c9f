"""
Images module data models.

These models cover stored image metadata, the public feed, request
bodies for the image endpoints, and cleanup sweep results.
"""

from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, Field


# Unclaimed images are kept for this long after upload
RETENTION_PERIOD = timedelta(days=3)

# Public feed page size (pages are 0-indexed)
PUBLIC_PAGE_SIZE = 12


class Image(BaseModel):
    """A processed image owned by exactly one user."""

    id: str = Field(..., description="Image ID (UUID)")
    user_id: str = Field(..., description="Owning user ID")
    blob_url: str = Field(..., description="Public URL of the stored object")
    original_filename: Optional[str] = Field(None, description="Filename as uploaded")
    file_size: Optional[int] = Field(None, description="Size in bytes")
    created_at: datetime = Field(..., description="Upload time")
    expires_at: Optional[datetime] = Field(None, description="Deletion time, None if never")
    is_public: bool = Field(default=False, description="Shown in the public feed")


class PublicImage(Image):
    """An image in the public feed, with its owner's email if claimed."""

    owner_email: Optional[str] = Field(None, description="Owner's email address")


class PublicImagePage(BaseModel):
    """One page of the public feed, newest first."""

    images: list[PublicImage]
    page: int
    has_more: bool


class SaveImageRequest(BaseModel):
    """Request to record an image that was already uploaded to storage."""

    user_id: str = Field(..., min_length=1)
    blob_url: str = Field(..., min_length=1, description="Public URL of the stored object")
    original_filename: Optional[str] = Field(None, max_length=255)
    file_size: Optional[int] = Field(None, ge=0)
    is_claimed: bool = Field(default=False, description="Owner already verified")


class VisibilityRequest(BaseModel):
    """Request to publish or unpublish an image."""

    user_id: str = Field(..., min_length=1)
    is_public: bool


class RemoveExpirationRequest(BaseModel):
    """Request to lift the expiration on all of a user's images."""

    user_id: str = Field(..., min_length=1)


class UploadValidation(BaseModel):
    """Result of checking an upload before processing."""

    valid: bool
    error: Optional[str] = None
    warning: Optional[str] = None


class CleanupResult(BaseModel):
    """Outcome of a cleanup sweep."""

    deleted: int = 0
    message: Optional[str] = None
