"""
Identity module.

Handles anonymous sessions, email claiming, sign-in reconciliation and
ownership checks.

Public API:
- IIdentityService: Interface for identity operations
- IUserRepository: Interface for user data access
- OwnershipVerifier: Checks a claimed user id against the caller
- User, MergeResult: Data models
- Identity exceptions: EmailInUseError, OwnershipError, etc.
"""

from .interfaces import IIdentityService, IUserRepository
from .models import (
    User,
    SessionRequest,
    SessionResponse,
    LinkEmailRequest,
    MergeRequest,
    RecoverRequest,
    MergeStep,
    MergeResult,
)
from .exceptions import (
    IdentityError,
    UserNotFoundError,
    AccountNotFoundError,
    EmailInUseError,
    LinkEmailError,
    InvalidSessionError,
    OwnershipError,
)

__all__ = [
    # Interfaces
    "IIdentityService",
    "IUserRepository",
    # Models
    "User",
    "SessionRequest",
    "SessionResponse",
    "LinkEmailRequest",
    "MergeRequest",
    "RecoverRequest",
    "MergeStep",
    "MergeResult",
    # Exceptions
    "IdentityError",
    "UserNotFoundError",
    "AccountNotFoundError",
    "EmailInUseError",
    "LinkEmailError",
    "InvalidSessionError",
    "OwnershipError",
]
