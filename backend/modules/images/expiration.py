"""
Expiration policy for uploaded images.

The expiration is fixed at upload time from the owner's verification
state. Only email verification, sign-in merges and an explicit unlock
clear it afterwards; nothing ever extends it.
"""

from datetime import datetime, timezone
from typing import Optional

from .models import Image, RETENTION_PERIOD


def compute_expiration(is_claimed: bool, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Get the expiration for a new image.

    Args:
        is_claimed: Whether the owner is verified at upload time.
        now: Upload time (defaults to the current UTC time).

    Returns:
        None for claimed images, otherwise now + RETENTION_PERIOD.
    """
    if is_claimed:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    return now + RETENTION_PERIOD


def is_expired(image: Image, now: Optional[datetime] = None) -> bool:
    """True if the image has an expiration strictly before now."""
    if image.expires_at is None:
        return False
    if now is None:
        now = datetime.now(timezone.utc)
    return image.expires_at < now
