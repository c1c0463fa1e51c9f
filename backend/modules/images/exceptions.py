"""
Images module exceptions.
"""

from typing import Optional

from shared.exceptions import (
    MirrorcutError,
    NotFoundError,
    ValidationError,
)


class ImageError(MirrorcutError):
    """Base exception for image-related errors."""

    pass


class ImageNotFoundError(NotFoundError):
    """Raised when an image is not found."""

    def __init__(self, image_id: str):
        super().__init__(
            "Image not found",
            code="IMAGE_NOT_FOUND",
            details={"image_id": image_id},
        )


class ImageSaveError(ImageError):
    """Raised when image metadata cannot be inserted."""

    def __init__(self, reason: str):
        super().__init__(
            f"Failed to save image: {reason}",
            code="IMAGE_SAVE_FAILED",
        )


class ImageQueryError(ImageError):
    """Raised when a read path fails at the database."""

    def __init__(self, reason: str):
        super().__init__(
            f"Failed to fetch images: {reason}",
            code="IMAGE_QUERY_FAILED",
        )


class ImageMutationError(ImageError):
    """Raised when an update or delete on an existing image fails."""

    def __init__(self, message: str, image_id: Optional[str] = None):
        super().__init__(
            message,
            code="IMAGE_MUTATION_FAILED",
            details={"image_id": image_id} if image_id else None,
        )


class InvalidUploadError(ValidationError):
    """Raised when an upload has an unsupported type or size."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_UPLOAD")


class ImageProcessingError(ImageError):
    """Raised when background removal or mirroring fails."""

    def __init__(self, message: str = "Failed to process image"):
        super().__init__(message, code="IMAGE_PROCESSING_FAILED")


class StorageUploadError(ImageError):
    """Raised when the processed image cannot be written to storage."""

    def __init__(self, reason: str):
        super().__init__(
            f"Failed to upload image: {reason}",
            code="STORAGE_UPLOAD_FAILED",
        )


class CleanupError(ImageError):
    """Raised when the cleanup sweep cannot read or delete rows."""

    def __init__(self, message: str):
        super().__init__(message, code="CLEANUP_FAILED")
