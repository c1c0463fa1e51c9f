"""
Error response models.

Standardized error responses for the API.
"""

from pydantic import BaseModel
from typing import Optional


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    error: str
    code: Optional[str] = None


class CronErrorResponse(BaseModel):
    """Error body returned by the scheduled cleanup endpoint."""

    error: str
    deleted: int = 0
