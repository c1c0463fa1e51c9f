"""
Authentication service implementation.

Validates Supabase JWT tokens and exchanges auth callback codes.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
import jwt

from shared.config import get_settings
from shared.database import get_supabase_anon_client
from shared.models import AuthenticatedUser

from .interfaces import IAuthService
from .models import JWTPayload
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
    CodeExchangeError,
)

logger = logging.getLogger(__name__)


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Uses Supabase JWT tokens for authentication and the Supabase
    auth API for code exchange.
    """

    def __init__(self):
        self._settings = get_settings()

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.

        This implementation validates Supabase JWTs using the JWT secret.
        """
        if not token:
            raise MissingTokenError()

        if not self._settings.supabase_jwt_secret:
            raise InvalidTokenError("Server authentication not configured")

        try:
            payload = jwt.decode(
                token,
                self._settings.supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e))

        jwt_payload = JWTPayload(**payload)

        return AuthenticatedUser(
            id=jwt_payload.sub,
            email=jwt_payload.email or None,
            email_verified=jwt_payload.email_confirmed_at is not None,
            last_sign_in=datetime.fromtimestamp(jwt_payload.iat, tz=timezone.utc),
            role=jwt_payload.role if jwt_payload.role != "authenticated" else "user",
        )

    async def exchange_code(self, code: str) -> AuthenticatedUser:
        """
        Exchange a callback code for a session via Supabase Auth.

        The provider only issues callback codes for confirmed emails, so the
        resulting identity is always treated as verified.
        """
        if not code:
            raise MissingTokenError("Missing authorization code")

        client = get_supabase_anon_client()
        try:
            response = client.auth.exchange_code_for_session({"auth_code": code})
        except Exception as e:
            logger.error(f"Session exchange error: {e}")
            raise CodeExchangeError() from e

        user = response.user if response else None
        if user is None or not user.email:
            raise CodeExchangeError("Authentication returned no user")

        return AuthenticatedUser(
            id=str(user.id),
            email=user.email,
            email_verified=True,
        )


# Module-level instance getter
_service_instance: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get the auth service singleton."""
    global _service_instance
    if _service_instance is None:
        _service_instance = AuthService()
    return _service_instance


def reset_auth_service() -> None:
    """Reset the auth service singleton (for testing)."""
    global _service_instance
    _service_instance = None
