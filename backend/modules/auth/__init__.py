"""
Authentication module.

Handles JWT validation and auth callback code exchange.

Public API:
- IAuthService: Interface for auth operations
- JWTPayload: Decoded Supabase JWT claims
- Auth exceptions: InvalidTokenError, ExpiredTokenError, etc.
"""

from .interfaces import IAuthService
from .models import JWTPayload
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
    CodeExchangeError,
)

__all__ = [
    # Interface
    "IAuthService",
    # Models
    "JWTPayload",
    # Exceptions
    "InvalidTokenError",
    "ExpiredTokenError",
    "MissingTokenError",
    "CodeExchangeError",
]
