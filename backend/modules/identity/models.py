"""
Identity module data models.

A user row starts out anonymous (session_id is a browser token) and is
claimed by linking a verified email. After a sign-in merge its
session_id holds the auth provider's user id instead.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    """A row of the `users` table."""

    id: str = Field(..., description="User ID (UUID)")
    session_id: str = Field(..., description="Anonymous session token or auth user ID")
    email: Optional[str] = Field(None, description="Linked email address")
    email_verified: bool = Field(default=False, description="Whether the email is verified")
    created_at: datetime = Field(..., description="Creation time")

    @property
    def is_claimed(self) -> bool:
        """Claimed users keep their images indefinitely."""
        return self.email_verified


class SessionRequest(BaseModel):
    """Request to resolve (or issue) an anonymous session."""

    session_id: Optional[str] = Field(None, description="Existing browser session token")


class SessionResponse(BaseModel):
    """Resolved session and the user it maps to."""

    session_id: str
    user: User


class LinkEmailRequest(BaseModel):
    """Request to claim an anonymous session with a verified email."""

    session_id: str = Field(..., min_length=1)
    email: EmailStr


class MergeRequest(BaseModel):
    """Request to fold an anonymous session into the signed-in identity."""

    anonymous_session_id: str = Field(..., min_length=1)


class RecoverRequest(BaseModel):
    """Request to recover an account by email."""

    email: EmailStr


class MergeStep(str, Enum):
    """Steps of an identity merge, in execution order."""

    LOCATE_ANONYMOUS = "locate_anonymous"
    BIND_AUTH_USER = "bind_auth_user"
    TRANSFER_IMAGES = "transfer_images"
    DELETE_ANONYMOUS = "delete_anonymous"
    CLEAR_EXPIRATION = "clear_expiration"


class MergeResult(BaseModel):
    """
    Outcome of an identity merge.

    `success` is False only when the authenticated user could not be
    located or created. Other step failures are reported in
    `failed_steps` with `completed` False; re-running the merge is safe.
    """

    success: bool
    error: Optional[str] = None
    user_id: Optional[str] = Field(None, description="Database ID of the authenticated user")
    anonymous_user_id: Optional[str] = None
    transferred: bool = Field(default=False, description="Anonymous images were moved")
    failed_steps: list[MergeStep] = Field(default_factory=list)
    attempts: int = 1

    @property
    def completed(self) -> bool:
        return self.success and not self.failed_steps
