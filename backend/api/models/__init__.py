"""API models package."""

from .errors import CronErrorResponse, ErrorResponse

__all__ = [
    "CronErrorResponse",
    "ErrorResponse",
]
