"""
Images module interfaces.

The identity module depends on IImageRepository to transfer images and
lift expirations; the API layer depends on IImageService.
"""

from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

from shared.models import AuthenticatedUser

from .models import Image, PublicImage, PublicImagePage


@runtime_checkable
class IImageRepository(Protocol):
    """
    Data access for the `images` table.

    Implementations perform no authorization checks and let storage
    failures propagate.
    """

    def create(self, data: dict[str, Any]) -> Image:
        """Insert an image row and return it."""
        ...

    def get_by_id(self, image_id: str) -> Optional[Image]:
        """Get an image by ID, or None."""
        ...

    def list_by_user(self, user_id: str) -> list[Image]:
        """All images owned by a user, newest first."""
        ...

    def list_public(self, offset: int, limit: int) -> tuple[list[PublicImage], int]:
        """A window of public images, newest first, plus the total public count."""
        ...

    def set_visibility(self, image_id: str, is_public: bool) -> None:
        """Publish or unpublish an image."""
        ...

    def delete(self, image_id: str) -> None:
        """Delete an image row."""
        ...

    def clear_expiration(self, user_id: str) -> None:
        """Set expires_at to NULL on every image owned by a user."""
        ...

    def reassign_owner(self, from_user_id: str, to_user_id: str) -> None:
        """Move every image of one user to another, clearing expiration."""
        ...

    def list_expired(self, cutoff: datetime) -> list[Image]:
        """Images whose expires_at is set and strictly before cutoff."""
        ...

    def delete_expired(self, image_ids: list[str], cutoff: datetime) -> list[Image]:
        """
        Delete the given images if they are still expired at cutoff.

        Returns the rows actually deleted.
        """
        ...


@runtime_checkable
class IObjectStorage(Protocol):
    """Object storage holding the processed PNG files."""

    def upload(self, path: str, data: bytes, content_type: str = "image/png") -> str:
        """Store an object and return its public URL."""
        ...

    def remove(self, paths: list[str]) -> None:
        """Delete objects by path."""
        ...

    def path_from_url(self, url: str) -> Optional[str]:
        """Object path for a public URL, or None if it is not one of ours."""
        ...


@runtime_checkable
class IBackgroundRemover(Protocol):
    """Strips the background from an encoded image."""

    def remove(self, data: bytes) -> bytes:
        """Return PNG bytes with a transparent background."""
        ...


@runtime_checkable
class IImageService(Protocol):
    """
    Interface for image operations.

    Every mutating operation verifies ownership of `user_id` against the
    optional authenticated caller before acting.
    """

    async def save_image_metadata(
        self,
        user_id: str,
        blob_url: str,
        original_filename: Optional[str],
        file_size: Optional[int],
        is_claimed: bool = False,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> Image:
        """
        Record an uploaded image.

        Raises:
            OwnershipError: If the caller may not act as user_id
            ImageSaveError: If the insert fails
        """
        ...

    async def upload_image(
        self,
        user_id: str,
        filename: str,
        content_type: str,
        data: bytes,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> Image:
        """
        Process, store and record an image.

        Raises:
            InvalidUploadError: If the type or size is not accepted
            OwnershipError: If the caller may not act as user_id
            ImageProcessingError: If background removal or mirroring fails
            StorageUploadError: If the object cannot be stored
            ImageSaveError: If the insert fails
        """
        ...

    async def get_user_images(self, user_id: str) -> list[Image]:
        """
        List a user's images, newest first.

        Raises:
            ImageQueryError: If the query fails
        """
        ...

    async def get_public_images(self, page: int = 0) -> PublicImagePage:
        """
        Get one page of the public feed.

        Raises:
            ValidationError: If page is negative
            ImageQueryError: If the query fails
        """
        ...

    async def delete_image(
        self,
        image_id: str,
        user_id: str,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> None:
        """
        Delete an image and its stored object.

        Raises:
            OwnershipError: If the caller or user_id does not own the image
            ImageNotFoundError: If the image does not exist
            ImageMutationError: If the row cannot be deleted
        """
        ...

    async def toggle_image_visibility(
        self,
        image_id: str,
        user_id: str,
        is_public: bool,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> None:
        """
        Publish or unpublish an image.

        Raises:
            OwnershipError: If the caller or user_id does not own the image
            ImageNotFoundError: If the image does not exist
            ImageMutationError: If the update fails
        """
        ...

    async def remove_expiration(
        self,
        user_id: str,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> None:
        """
        Lift the expiration on all of a user's images.

        Raises:
            OwnershipError: If the caller may not act as user_id
            ImageMutationError: If the update fails
        """
        ...
