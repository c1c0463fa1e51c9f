"""
Images module.

Handles image metadata, the public feed, the processing pipeline,
object storage and the expiration lifecycle.

Public API:
- IImageService: Interface for image operations
- IImageRepository, IObjectStorage, IBackgroundRemover: Collaborator interfaces
- Image, PublicImage, PublicImagePage: Data models
- RETENTION_PERIOD, PUBLIC_PAGE_SIZE: Lifecycle and feed constants
"""

from .interfaces import (
    IImageService,
    IImageRepository,
    IObjectStorage,
    IBackgroundRemover,
)
from .models import (
    Image,
    PublicImage,
    PublicImagePage,
    SaveImageRequest,
    VisibilityRequest,
    RemoveExpirationRequest,
    UploadValidation,
    CleanupResult,
    RETENTION_PERIOD,
    PUBLIC_PAGE_SIZE,
)
from .exceptions import (
    ImageError,
    ImageNotFoundError,
    ImageSaveError,
    ImageQueryError,
    ImageMutationError,
    InvalidUploadError,
    ImageProcessingError,
    StorageUploadError,
    CleanupError,
)

__all__ = [
    # Interfaces
    "IImageService",
    "IImageRepository",
    "IObjectStorage",
    "IBackgroundRemover",
    # Models
    "Image",
    "PublicImage",
    "PublicImagePage",
    "SaveImageRequest",
    "VisibilityRequest",
    "RemoveExpirationRequest",
    "UploadValidation",
    "CleanupResult",
    "RETENTION_PERIOD",
    "PUBLIC_PAGE_SIZE",
    # Exceptions
    "ImageError",
    "ImageNotFoundError",
    "ImageSaveError",
    "ImageQueryError",
    "ImageMutationError",
    "InvalidUploadError",
    "ImageProcessingError",
    "StorageUploadError",
    "CleanupError",
]
