"""
Authentication module interface.

Other modules should depend on IAuthService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Protocol, runtime_checkable

from shared.models import AuthenticatedUser


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    This protocol defines the contract that the auth module exposes
    to other modules. Implementations must provide all these methods.
    """

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.

        Args:
            token: JWT access token from Supabase Auth

        Returns:
            AuthenticatedUser with user ID and basic info

        Raises:
            AuthenticationError: If token is invalid or expired
        """
        ...

    async def exchange_code(self, code: str) -> AuthenticatedUser:
        """
        Exchange an auth callback code (magic link / OAuth) for a session.

        Args:
            code: One-time code from the auth provider redirect

        Returns:
            AuthenticatedUser for the signed-in identity

        Raises:
            CodeExchangeError: If the provider rejects the code
        """
        ...
