"""
Supabase Storage helpers for processed images.

Objects live in a single public bucket and are addressed as
`{user_id}/{timestamp_ms}-{sanitized_filename}.png`. The public URL of an
object is `.../storage/v1/object/public/{bucket}/{path}`; the part after
the bucket is the path used for deletion.
"""

import logging
import re
import time
from typing import Optional
from urllib.parse import unquote, urlparse

from supabase import Client

from .interfaces import IObjectStorage

logger = logging.getLogger(__name__)

PUBLIC_URL_PREFIX = "/storage/v1/object/public/"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [a-zA-Z0-9.-] with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_object_path(user_id: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Build the storage path for a processed image.

    Args:
        user_id: Owning user ID (first path segment).
        filename: Original filename, sanitized before use.
        timestamp_ms: Upload time in epoch milliseconds (defaults to now).

    Returns:
        Path of the form "{user_id}/{timestamp}-{sanitized}.png".
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{user_id}/{timestamp_ms}-{sanitize_filename(filename)}.png"


def path_from_url(url: str, bucket: str) -> Optional[str]:
    """
    Extract the object path from a public storage URL.

    Returns None for relative or malformed URLs and for URLs that do not
    point into the given bucket.
    """
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None

    match = re.search(
        re.escape(f"{PUBLIC_URL_PREFIX}{bucket}/") + r"(.+)",
        parsed.path,
    )
    return unquote(match.group(1)) if match else None


class SupabaseObjectStorage(IObjectStorage):
    """Stores processed images in a Supabase Storage bucket."""

    def __init__(self, db: Client, bucket: str = "images") -> None:
        self._db = db
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    def upload(self, path: str, data: bytes, content_type: str = "image/png") -> str:
        """
        Upload an object and return its public URL.

        Existing objects are never overwritten; storage errors propagate.
        """
        self._db.storage.from_(self._bucket).upload(
            path=path,
            file=data,
            file_options={
                "content-type": content_type,
                "cache-control": "3600",
                "upsert": "false",
            },
        )
        public_url = self._db.storage.from_(self._bucket).get_public_url(path)
        logger.info(f"Uploaded file to {self._bucket}/{path}")
        return public_url

    def remove(self, paths: list[str]) -> None:
        """Delete objects in one batch. Storage errors propagate."""
        if not paths:
            return
        self._db.storage.from_(self._bucket).remove(paths)
        logger.info(f"Removed {len(paths)} object(s) from {self._bucket}")

    def path_from_url(self, url: str) -> Optional[str]:
        return path_from_url(url, self._bucket)
