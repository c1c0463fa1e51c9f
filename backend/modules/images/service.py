"""
Images service implementation.

Provides the upload write path, the read paths for a user's gallery and
the public feed, and the mutations on existing images.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from shared.exceptions import ExternalServiceError, ValidationError
from shared.models import AuthenticatedUser
from modules.identity.exceptions import OwnershipError, UserNotFoundError
from modules.identity.interfaces import IUserRepository
from modules.identity.ownership import OwnershipVerifier

from .expiration import compute_expiration
from .interfaces import IImageRepository, IImageService, IObjectStorage
from .models import Image, PublicImagePage, PUBLIC_PAGE_SIZE
from .processing import ImageProcessor, validate_upload, MAX_FILE_SIZE, WARN_FILE_SIZE
from .storage import build_object_path
from .exceptions import (
    ImageMutationError,
    ImageNotFoundError,
    ImageQueryError,
    ImageSaveError,
    InvalidUploadError,
    StorageUploadError,
)

logger = logging.getLogger(__name__)


class ImageService(IImageService):
    """
    Image service with Supabase-backed repositories and storage.

    Implements IImageService. Ownership of the acting user id is always
    verified before the image itself is looked at.
    """

    def __init__(
        self,
        images: IImageRepository,
        users: IUserRepository,
        storage: IObjectStorage,
        processor: Optional[ImageProcessor] = None,
        max_upload_size: int = MAX_FILE_SIZE,
        warn_upload_size: int = WARN_FILE_SIZE,
    ):
        self._images = images
        self._users = users
        self._storage = storage
        self._processor = processor
        self._ownership = OwnershipVerifier(users)
        self._max_upload_size = max_upload_size
        self._warn_upload_size = warn_upload_size

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    async def save_image_metadata(
        self,
        user_id: str,
        blob_url: str,
        original_filename: Optional[str],
        file_size: Optional[int],
        is_claimed: bool = False,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> Image:
        """Insert a private image with the expiration its claim state implies."""
        await self._ownership.verify(user_id, auth_user)

        data = {
            "user_id": user_id,
            "blob_url": blob_url,
            "original_filename": original_filename,
            "file_size": file_size,
            "expires_at": _isoformat(compute_expiration(is_claimed)),
            "is_public": False,
        }

        try:
            return self._images.create(data)
        except Exception as e:
            logger.error(f"Failed to save image for user {user_id}: {e}")
            raise ImageSaveError(str(e)) from e

    async def upload_image(
        self,
        user_id: str,
        filename: str,
        content_type: str,
        data: bytes,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> Image:
        """Validate, process, store and record an uploaded image."""
        validation = validate_upload(
            content_type,
            len(data),
            max_size=self._max_upload_size,
            warn_size=self._warn_upload_size,
        )
        if not validation.valid:
            raise InvalidUploadError(validation.error or "Invalid upload")
        if validation.warning:
            logger.info(validation.warning)

        await self._ownership.verify(user_id, auth_user)

        try:
            owner = self._users.get_by_id(user_id)
        except Exception as e:
            raise ExternalServiceError(f"Failed to fetch user: {e}", service="supabase") from e
        if owner is None:
            raise UserNotFoundError(user_id)

        if self._processor is None:
            self._processor = ImageProcessor()
        processed = await asyncio.to_thread(self._processor.process, data)

        path = build_object_path(user_id, filename)
        try:
            blob_url = self._storage.upload(path, processed)
        except Exception as e:
            logger.error(f"Failed to upload {path}: {e}")
            raise StorageUploadError(str(e)) from e

        try:
            return await self.save_image_metadata(
                user_id,
                blob_url,
                filename,
                len(processed),
                is_claimed=owner.is_claimed,
                auth_user=auth_user,
            )
        except ImageSaveError:
            # No row references the object, so the cleanup sweep cannot find it
            try:
                self._storage.remove([path])
            except Exception as e:
                logger.error(f"Failed to remove orphaned object {path}: {e}")
            raise

    # -------------------------------------------------------------------------
    # Read paths
    # -------------------------------------------------------------------------

    async def get_user_images(self, user_id: str) -> list[Image]:
        try:
            return self._images.list_by_user(user_id)
        except Exception as e:
            raise ImageQueryError(str(e)) from e

    async def get_public_images(self, page: int = 0) -> PublicImagePage:
        """Get one page of public images; has_more is true while rows remain."""
        if page < 0:
            raise ValidationError("Page must be zero or greater", code="INVALID_PAGE")

        offset = page * PUBLIC_PAGE_SIZE
        try:
            images, total = self._images.list_public(offset, PUBLIC_PAGE_SIZE)
        except Exception as e:
            logger.error(f"Failed to fetch public images: {e}")
            raise ImageQueryError(str(e)) from e

        return PublicImagePage(
            images=images[:PUBLIC_PAGE_SIZE],
            page=page,
            has_more=(offset + PUBLIC_PAGE_SIZE) < total,
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def delete_image(
        self,
        image_id: str,
        user_id: str,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> None:
        """
        Delete an image row and, best-effort, its stored object.

        A failed object removal leaves an orphaned object behind; the row
        is deleted regardless.
        """
        await self._ownership.verify(user_id, auth_user)
        image = self._get_owned_image(image_id, user_id)

        path = self._storage.path_from_url(image.blob_url)
        if path:
            try:
                self._storage.remove([path])
            except Exception as e:
                logger.error(f"Failed to delete from storage: {e}")

        try:
            self._images.delete(image_id)
        except Exception as e:
            logger.error(f"Failed to delete image {image_id}: {e}")
            raise ImageMutationError("Failed to delete image record", image_id) from e

    async def toggle_image_visibility(
        self,
        image_id: str,
        user_id: str,
        is_public: bool,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> None:
        await self._ownership.verify(user_id, auth_user)
        self._get_owned_image(image_id, user_id)

        try:
            self._images.set_visibility(image_id, is_public)
        except Exception as e:
            logger.error(f"Failed to update visibility of {image_id}: {e}")
            raise ImageMutationError("Failed to update visibility", image_id) from e

    async def remove_expiration(
        self,
        user_id: str,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> None:
        await self._ownership.verify(user_id, auth_user)

        try:
            self._images.clear_expiration(user_id)
        except Exception as e:
            logger.error(f"Failed to remove expiration for {user_id}: {e}")
            raise ImageMutationError("Failed to remove expiration") from e

    def _get_owned_image(self, image_id: str, user_id: str) -> Image:
        """Fetch an image and check that user_id owns it."""
        try:
            image = self._images.get_by_id(image_id)
        except Exception as e:
            logger.error(f"Failed to fetch image {image_id}: {e}")
            raise ImageNotFoundError(image_id) from e

        if image is None:
            raise ImageNotFoundError(image_id)
        if image.user_id != user_id:
            raise OwnershipError(user_id)
        return image


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
