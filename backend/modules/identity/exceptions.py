"""
Identity module exceptions.
"""

from shared.exceptions import (
    MirrorcutError,
    NotFoundError,
    ValidationError,
    ConflictError,
    AuthorizationError,
)


class IdentityError(MirrorcutError):
    """Base exception for identity-related errors."""

    pass


class UserNotFoundError(NotFoundError):
    """Raised when no user row matches a session or identity."""

    def __init__(self, lookup: str):
        super().__init__(
            "User not found",
            code="USER_NOT_FOUND",
            details={"lookup": lookup},
        )


class AccountNotFoundError(NotFoundError):
    """Raised when recovery finds no verified account for an email."""

    def __init__(self):
        super().__init__(
            "No verified account found with this email",
            code="ACCOUNT_NOT_FOUND",
        )


class EmailInUseError(ConflictError):
    """Raised when an email is already bound to a different session."""

    def __init__(self):
        super().__init__(
            "Email is already in use by another account",
            code="EMAIL_IN_USE",
        )


class LinkEmailError(IdentityError):
    """Raised when the email cannot be written to the user row."""

    def __init__(self):
        super().__init__(
            "Failed to link email. Please try again.",
            code="LINK_EMAIL_FAILED",
        )


class InvalidSessionError(ValidationError):
    """Raised when a session token is malformed."""

    def __init__(self):
        super().__init__("Invalid session id", code="INVALID_SESSION")


class OwnershipError(AuthorizationError):
    """
    Raised when the caller may not act on behalf of a user id.

    Also used when a user id does not own the image it targets.
    """

    def __init__(self, user_id: str):
        super().__init__(
            "Unauthorized",
            code="UNAUTHORIZED",
            details={"user_id": user_id},
        )
