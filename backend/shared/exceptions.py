"""
Base exception classes for the Mirrorcut backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application: the API
layer turns any MirrorcutError into a `{success: false, error, code}` body.
"""

from typing import Optional, Any


class MirrorcutError(Exception):
    """
    Base exception for all Mirrorcut errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class NotFoundError(MirrorcutError):
    """Resource not found."""

    pass


class ValidationError(MirrorcutError):
    """Input validation failed."""

    pass


class ConflictError(MirrorcutError):
    """Resource state conflicts with the request."""

    pass


class AuthenticationError(MirrorcutError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(MirrorcutError):
    """Authorization failed (insufficient permissions)."""

    pass


class ExternalServiceError(MirrorcutError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
