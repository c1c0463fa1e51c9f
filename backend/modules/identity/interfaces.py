"""
Identity module interfaces.

The images module depends on IUserRepository (through the ownership
verifier); the API layer depends on IIdentityService.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import MergeResult, User


@runtime_checkable
class IUserRepository(Protocol):
    """
    Data access for the `users` table.

    Implementations perform no authorization checks and let storage
    failures propagate.
    """

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by database ID, or None."""
        ...

    def get_by_session_id(self, session_id: str) -> Optional[User]:
        """Get the user bound to a session identifier, or None."""
        ...

    def get_by_email(self, email: str, verified_only: bool = False) -> Optional[User]:
        """Get the user with an email (optionally only if verified), or None."""
        ...

    def create(
        self,
        session_id: str,
        email: Optional[str] = None,
        email_verified: bool = False,
    ) -> User:
        """Insert a user row and return it."""
        ...

    def link_email(self, session_id: str, email: str) -> Optional[User]:
        """
        Set email and mark verified on the user with this session.

        Returns the updated user, or None if no row matched.
        """
        ...

    def bind_auth_identity(self, user_id: str, auth_user_id: str) -> None:
        """Stamp the auth identity as session_id and mark the user verified."""
        ...

    def delete(self, user_id: str) -> None:
        """Delete a user row."""
        ...


@runtime_checkable
class IIdentityService(Protocol):
    """Interface for identity resolution and reconciliation."""

    async def get_or_create_user(self, session_id: str) -> User:
        """
        Resolve a session identifier to a user, creating it if absent.

        Idempotent: the same session always yields the same user.

        Raises:
            ExternalServiceError: If the user cannot be read or created
        """
        ...

    async def link_email_to_user(self, session_id: str, email: str) -> User:
        """
        Claim a session's user with a verified email.

        Raises:
            EmailInUseError: If the email belongs to a different session
            UserNotFoundError: If no user exists for the session
            LinkEmailError: If the update fails
        """
        ...

    async def merge_anonymous_to_auth_user(
        self,
        anonymous_session_id: str,
        auth_user_id: str,
        email: str,
    ) -> MergeResult:
        """
        Fold an anonymous identity into an authenticated one.

        Never raises for storage failures; see MergeResult.
        """
        ...

    async def reconcile_auth_user(self, auth_user_id: str, email: str) -> User:
        """
        Bind a freshly signed-in identity to its user row.

        Raises:
            ExternalServiceError: If the user cannot be read or created
        """
        ...

    async def get_user_for_identity(self, auth_user_id: str, email: Optional[str]) -> User:
        """
        Get the user bound to an authenticated identity.

        Raises:
            UserNotFoundError: If none exists and no email is known
        """
        ...

    async def recover_by_email(self, email: str) -> str:
        """
        Check that a verified account exists for an email.

        Returns:
            Instructions for signing in

        Raises:
            AccountNotFoundError: If no verified account uses the email
        """
        ...
