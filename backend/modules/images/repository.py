"""
Image repository for database access.

Encapsulates all Supabase queries and data mapping for the `images` table.
"""

from datetime import datetime
from typing import Optional, Any

from shared.repository import BaseRepository
from .interfaces import IImageRepository
from .models import Image, PublicImage


class ImageRepository(BaseRepository[Image], IImageRepository):
    """
    Repository for image data access.

    All methods return Pydantic models with proper mapping from database rows.

    Note: This repository does NOT perform authorization checks.
    The service layer is responsible for verifying user ownership.
    """

    TABLE = "images"

    # Embeds the owner's email through the images.user_id foreign key
    PUBLIC_SELECT = "*, user:users!images_user_id_fkey(email)"

    # -------------------------------------------------------------------------
    # CRUD operations
    # -------------------------------------------------------------------------

    def create(self, data: dict[str, Any]) -> Image:
        """
        Create a new image record.

        Args:
            data: Dictionary with image fields (user_id, blob_url, expires_at, ...)

        Returns:
            Created Image with generated ID and timestamps.
        """
        result = self._db.table(self.TABLE).insert(data).execute()
        return self._map_to_image(result.data[0])

    def get_by_id(self, image_id: str) -> Optional[Image]:
        result = self._db.table(self.TABLE).select("*").eq("id", image_id).execute()
        if not result.data:
            return None
        return self._map_to_image(result.data[0])

    def list_by_user(self, user_id: str) -> list[Image]:
        result = (
            self._db.table(self.TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [self._map_to_image(row) for row in result.data]

    def list_public(self, offset: int, limit: int) -> tuple[list[PublicImage], int]:
        """
        List public images with pagination.

        Args:
            offset: Index of the first row.
            limit: Maximum number of rows.

        Returns:
            Tuple of (images newest first, total public image count).
        """
        result = (
            self._db.table(self.TABLE)
            .select(self.PUBLIC_SELECT, count="exact")
            .eq("is_public", True)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        images = [self._map_to_public_image(row) for row in result.data]
        return images, result.count or 0

    def set_visibility(self, image_id: str, is_public: bool) -> None:
        self._db.table(self.TABLE).update({"is_public": is_public}).eq("id", image_id).execute()

    def delete(self, image_id: str) -> None:
        self._db.table(self.TABLE).delete().eq("id", image_id).execute()

    # -------------------------------------------------------------------------
    # Ownership and expiration
    # -------------------------------------------------------------------------

    def clear_expiration(self, user_id: str) -> None:
        self._db.table(self.TABLE).update({"expires_at": None}).eq("user_id", user_id).execute()

    def reassign_owner(self, from_user_id: str, to_user_id: str) -> None:
        """Move all images of one user to another and make them permanent."""
        self._db.table(self.TABLE).update({
            "user_id": to_user_id,
            "expires_at": None,
        }).eq("user_id", from_user_id).execute()

    def list_expired(self, cutoff: datetime) -> list[Image]:
        result = (
            self._db.table(self.TABLE)
            .select("*")
            .not_.is_("expires_at", "null")
            .lt("expires_at", cutoff.isoformat())
            .execute()
        )
        return [self._map_to_image(row) for row in result.data]

    def delete_expired(self, image_ids: list[str], cutoff: datetime) -> list[Image]:
        """
        Delete images by ID, re-checking expiration in the same statement.

        Rows whose expiration was cleared after they were selected no
        longer match and survive.
        """
        if not image_ids:
            return []
        result = (
            self._db.table(self.TABLE)
            .delete()
            .in_("id", image_ids)
            .lt("expires_at", cutoff.isoformat())
            .execute()
        )
        return [self._map_to_image(row) for row in result.data]

    # -------------------------------------------------------------------------
    # Private mapping methods
    # -------------------------------------------------------------------------

    def _map_to_image(self, data: dict[str, Any]) -> Image:
        """Map database row to Image model."""
        return Image(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            blob_url=data["blob_url"],
            original_filename=data.get("original_filename"),
            file_size=data.get("file_size"),
            created_at=data["created_at"],
            expires_at=data.get("expires_at"),
            is_public=data.get("is_public", False),
        )

    def _map_to_public_image(self, data: dict[str, Any]) -> PublicImage:
        """Map database row with embedded owner to PublicImage model."""
        owner = data.get("user") or {}
        return PublicImage(
            **self._map_to_image(data).model_dump(),
            owner_email=owner.get("email"),
        )
