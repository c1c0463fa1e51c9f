"""
Ownership verification for mutating operations.

Signed-in callers may only act as the user row bound to their auth
identity. Anonymous callers are trusted to be whoever they claim: anyone
who knows another browser's session token, or the user id it resolves
to, can act as that user. DESIGN.md records this trust model; read it
before tightening it.
"""

import logging
from typing import Optional

from shared.models import AuthenticatedUser

from .exceptions import OwnershipError
from .interfaces import IUserRepository

logger = logging.getLogger(__name__)


class OwnershipVerifier:
    """Checks a claimed user id against the caller's identity."""

    def __init__(self, users: IUserRepository) -> None:
        self._users = users

    async def is_owner(
        self,
        claimed_user_id: str,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> bool:
        """
        Decide whether the caller may act as claimed_user_id.

        Lookup failures propagate rather than being read as a rejection.
        """
        if auth_user is None:
            return True

        user = self._users.get_by_session_id(auth_user.id)
        return user is not None and user.id == claimed_user_id

    async def verify(
        self,
        claimed_user_id: str,
        auth_user: Optional[AuthenticatedUser] = None,
    ) -> None:
        """
        Raise unless the caller may act as claimed_user_id.

        Raises:
            OwnershipError: On mismatch with the authenticated identity
        """
        if not await self.is_owner(claimed_user_id, auth_user):
            logger.warning(
                f"Rejected request for user {claimed_user_id} from identity {auth_user.id}"
            )
            raise OwnershipError(claimed_user_id)
