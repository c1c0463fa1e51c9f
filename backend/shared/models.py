"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class AuthenticatedUser(BaseModel):
    """
    Represents an authenticated user in the system.

    This model is populated from JWT claims (or an auth code exchange)
    and made available to route handlers via dependency injection.

    `id` is the auth provider's user id. It is NOT the id of the row in
    the `users` table; that row carries it in `session_id` once the
    identity has been claimed.
    """

    id: str = Field(..., description="Auth provider user ID (UUID from Supabase)")
    email: Optional[EmailStr] = Field(None, description="User's email address")
    email_verified: bool = Field(default=False, description="Whether email is verified")

    last_sign_in: Optional[datetime] = Field(None, description="Last sign-in time")
    role: str = Field(default="user", description="User role")

    model_config = {
        "frozen": True,
        "extra": "ignore",  # JWTs carry more claims than we read
    }


class ActionResult(BaseModel):
    """
    Outcome of a mutation on an existing resource.

    Failures never reach clients as an unhandled error: the API error
    handler renders them in this same shape with success=False.
    """

    success: bool = Field(..., description="Whether the action succeeded")
    error: Optional[str] = Field(None, description="Error message if it failed")
    message: Optional[str] = Field(None, description="Informational message")
