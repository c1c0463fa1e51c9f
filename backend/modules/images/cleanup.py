"""
Cleanup sweep for expired images.

Invoked by an external scheduler. The sweep takes its cutoff once and
only ever deletes rows that are still expired at that cutoff, so it can
run alongside itself, uploads, and claims.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .exceptions import CleanupError
from .interfaces import IImageRepository, IObjectStorage
from .models import CleanupResult

logger = logging.getLogger(__name__)


class CleanupService:
    """Deletes images past their expiration, rows first, then objects."""

    def __init__(self, images: IImageRepository, storage: IObjectStorage):
        self._images = images
        self._storage = storage

    async def run(self, now: Optional[datetime] = None) -> CleanupResult:
        """
        Delete every image whose expiration is set and before now.

        Objects are only removed for rows this sweep actually deleted; a
        failed object removal is logged and leaves an orphan behind.

        Raises:
            CleanupError: If expired rows cannot be read or deleted
        """
        cutoff = now or datetime.now(timezone.utc)

        try:
            expired = self._images.list_expired(cutoff)
        except Exception as e:
            logger.error(f"Failed to fetch expired images: {e}")
            raise CleanupError("Database error") from e

        if not expired:
            return CleanupResult(deleted=0, message="No expired images found")

        try:
            deleted = self._images.delete_expired([image.id for image in expired], cutoff)
        except Exception as e:
            logger.error(f"Failed to delete from database: {e}")
            raise CleanupError("Database delete error") from e

        paths = [
            path
            for path in (self._storage.path_from_url(image.blob_url) for image in deleted)
            if path
        ]
        if paths:
            try:
                self._storage.remove(paths)
            except Exception as e:
                logger.error(f"Failed to delete from storage: {e}")

        logger.info(f"Cleanup: Deleted {len(deleted)} expired images")
        return CleanupResult(deleted=len(deleted))
