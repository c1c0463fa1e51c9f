"""
Image processing pipeline.

Uploads are validated, have their background removed with rembg, and
are mirrored horizontally with Pillow. The output is always PNG so the
transparent background survives.
"""

import io
import logging
from typing import Optional

from PIL import Image as PILImage, ImageOps, UnidentifiedImageError

from .exceptions import ImageProcessingError
from .interfaces import IBackgroundRemover
from .models import UploadValidation

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/bmp",
    "image/tiff",
    "image/gif",
)

MAX_FILE_SIZE = 50 * 1024 * 1024
WARN_FILE_SIZE = 25 * 1024 * 1024


def format_file_size(size: int) -> str:
    """Human readable size: bytes, KB or MB with one decimal."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def validate_upload(
    content_type: Optional[str],
    size: int,
    max_size: int = MAX_FILE_SIZE,
    warn_size: int = WARN_FILE_SIZE,
) -> UploadValidation:
    """
    Check an upload's type and size before any processing.

    Files above warn_size are accepted with a warning; files above
    max_size are rejected.
    """
    if content_type not in SUPPORTED_TYPES:
        return UploadValidation(
            valid=False,
            error=(
                f"Unsupported file type: {content_type}. "
                "Supported: JPEG, PNG, WebP, BMP, TIFF, GIF"
            ),
        )

    if size > max_size:
        return UploadValidation(
            valid=False,
            error=(
                f"File too large ({format_file_size(size)}). "
                f"Maximum size is {format_file_size(max_size)}."
            ),
        )

    if size > warn_size:
        return UploadValidation(
            valid=True,
            warning=f"Large file ({format_file_size(size)}) - processing may take longer.",
        )

    return UploadValidation(valid=True)


def flip_horizontal(data: bytes) -> bytes:
    """Mirror an encoded image left to right and return it as RGBA PNG."""
    with PILImage.open(io.BytesIO(data)) as source:
        mirrored = ImageOps.mirror(source.convert("RGBA"))

    buffer = io.BytesIO()
    mirrored.save(buffer, format="PNG")
    return buffer.getvalue()


class RembgBackgroundRemover(IBackgroundRemover):
    """Background removal backed by rembg (U2-Net, runs on CPU)."""

    def __init__(self, model_name: str = "u2net") -> None:
        self._model_name = model_name
        self._session = None

    def remove(self, data: bytes) -> bytes:
        # rembg pulls in onnxruntime at import time, so load it on first use
        from rembg import new_session, remove

        if self._session is None:
            self._session = new_session(self._model_name)
        return remove(data, session=self._session)


class ImageProcessor:
    """
    Runs the upload pipeline: background removal, then horizontal mirror.

    The background remover is injected so tests and alternative backends
    can replace rembg.
    """

    def __init__(self, remover: Optional[IBackgroundRemover] = None) -> None:
        self._remover = remover or RembgBackgroundRemover()

    def process(self, data: bytes) -> bytes:
        """
        Process an encoded image.

        Raises:
            ImageProcessingError: If the image cannot be decoded or processed
        """
        try:
            without_background = self._remover.remove(data)
        except Exception as e:
            logger.error(f"Background removal failed: {e}")
            raise ImageProcessingError("Failed to remove background") from e

        try:
            return flip_horizontal(without_background)
        except (UnidentifiedImageError, OSError) as e:
            logger.error(f"Flipping image failed: {e}")
            raise ImageProcessingError("Failed to flip image") from e
