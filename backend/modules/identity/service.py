"""
Identity service implementation.

Resolves anonymous sessions to users, claims them with verified emails,
and reconciles anonymous identities with authenticated ones on sign-in.

The reconciliation steps run against separate tables without a shared
transaction. Each step is idempotent, so a merge that stopped half way
is finished by running it again; the service does that itself up to
`max_merge_attempts` times.
"""

import logging
from typing import Optional

from shared.exceptions import ExternalServiceError
from modules.images.interfaces import IImageRepository

from .interfaces import IIdentityService, IUserRepository
from .models import MergeResult, MergeStep, User
from .exceptions import (
    AccountNotFoundError,
    EmailInUseError,
    InvalidSessionError,
    LinkEmailError,
    UserNotFoundError,
)
from .session import is_valid_session_id

logger = logging.getLogger(__name__)

RECOVERY_MESSAGE = "Please sign in with your email and password"


class IdentityService(IIdentityService):
    """
    Identity service over user and image repositories.

    Implements IIdentityService with Supabase-backed repositories in
    production and in-memory ones in tests.
    """

    def __init__(
        self,
        users: IUserRepository,
        images: IImageRepository,
        max_merge_attempts: int = 2,
    ):
        self._users = users
        self._images = images
        self._max_merge_attempts = max(1, max_merge_attempts)

    # -------------------------------------------------------------------------
    # Session resolution
    # -------------------------------------------------------------------------

    async def get_or_create_user(self, session_id: str) -> User:
        """Look up the user for a session, creating an anonymous one if absent."""
        if not is_valid_session_id(session_id):
            raise InvalidSessionError()

        try:
            existing = self._users.get_by_session_id(session_id)
        except Exception as e:
            raise ExternalServiceError(f"Failed to fetch user: {e}", service="supabase") from e
        if existing:
            return existing

        try:
            user = self._users.create(session_id=session_id)
        except Exception as e:
            # A concurrent request for the same session may have won the insert
            try:
                raced = self._users.get_by_session_id(session_id)
            except Exception as lookup_error:
                logger.error(f"Error re-reading user after failed insert: {lookup_error}")
                raced = None
            if raced:
                return raced
            raise ExternalServiceError(f"Failed to create user: {e}", service="supabase") from e

        logger.info(f"Created anonymous user {user.id}")
        return user

    async def get_user_for_identity(self, auth_user_id: str, email: Optional[str]) -> User:
        """Get the user bound to an auth identity, reconciling on first use."""
        try:
            user = self._users.get_by_session_id(auth_user_id)
        except Exception as e:
            raise ExternalServiceError(f"Failed to fetch user: {e}", service="supabase") from e
        if user:
            return user
        if not email:
            raise UserNotFoundError(auth_user_id)
        return await self.reconcile_auth_user(auth_user_id, email)

    # -------------------------------------------------------------------------
    # Claiming
    # -------------------------------------------------------------------------

    async def link_email_to_user(self, session_id: str, email: str) -> User:
        """
        Attach a verified email to a session's user and make its images permanent.

        Only clearing the expiration is best-effort; everything before it
        must succeed.
        """
        try:
            existing = self._users.get_by_email(email)
        except Exception as e:
            logger.error(f"Error checking email availability: {e}")
            raise LinkEmailError() from e

        if existing and existing.session_id != session_id:
            raise EmailInUseError()

        try:
            user = self._users.link_email(session_id, email)
        except Exception as e:
            logger.error(f"Error linking email: {e}")
            raise LinkEmailError() from e

        if user is None:
            raise UserNotFoundError(session_id)

        try:
            self._images.clear_expiration(user.id)
        except Exception as e:
            logger.error(f"Error removing image expiration: {e}")

        logger.info(f"Linked email to user {user.id}")
        return user

    async def recover_by_email(self, email: str) -> str:
        user = self._users.get_by_email(email, verified_only=True)
        if user is None:
            raise AccountNotFoundError()
        return RECOVERY_MESSAGE

    async def reconcile_auth_user(self, auth_user_id: str, email: str) -> User:
        """
        Bind a signed-in identity to the user row owning its email.

        Creates a verified user when none exists. For an existing row the
        session stamp and the expiration clearing are best-effort.
        """
        try:
            existing = self._users.get_by_email(email)
            if existing is None:
                user = self._users.create(
                    session_id=auth_user_id,
                    email=email,
                    email_verified=True,
                )
                logger.info(f"Created verified user {user.id}")
                return user
        except Exception as e:
            logger.error(f"Error creating user: {e}")
            raise ExternalServiceError(f"Failed to create user: {e}", service="supabase") from e

        try:
            self._users.bind_auth_identity(existing.id, auth_user_id)
        except Exception as e:
            logger.error(f"Error updating user: {e}")

        try:
            self._images.clear_expiration(existing.id)
        except Exception as e:
            logger.error(f"Error removing image expiration: {e}")

        return existing.model_copy(update={"session_id": auth_user_id, "email_verified": True})

    # -------------------------------------------------------------------------
    # Merge
    # -------------------------------------------------------------------------

    async def merge_anonymous_to_auth_user(
        self,
        anonymous_session_id: str,
        auth_user_id: str,
        email: str,
    ) -> MergeResult:
        """
        Fold an anonymous identity into an authenticated one.

        Retries the whole step sequence while any step failed.
        """
        result = self._merge_once(anonymous_session_id, auth_user_id, email)
        for attempt in range(2, self._max_merge_attempts + 1):
            if result.completed:
                break
            logger.warning(
                f"Merge of session {anonymous_session_id} incomplete "
                f"({', '.join(s.value for s in result.failed_steps)}), retrying"
            )
            previous = result
            result = self._merge_once(anonymous_session_id, auth_user_id, email)
            result.attempts = attempt
            # The anonymous row is gone once an earlier attempt moved its images
            result.transferred = result.transferred or previous.transferred
            result.anonymous_user_id = result.anonymous_user_id or previous.anonymous_user_id

        if not result.completed:
            logger.error(
                f"Merge of session {anonymous_session_id} into {auth_user_id} "
                f"left incomplete after {result.attempts} attempt(s)"
            )
        return result

    def _merge_once(
        self,
        anonymous_session_id: str,
        auth_user_id: str,
        email: str,
    ) -> MergeResult:
        failed: list[MergeStep] = []

        # (a) anonymous side; absent means there is nothing to transfer
        anonymous: Optional[User] = None
        try:
            anonymous = self._users.get_by_session_id(anonymous_session_id)
        except Exception as e:
            logger.error(f"Error finding anonymous user: {e}")
            failed.append(MergeStep.LOCATE_ANONYMOUS)

        # (b) authenticated side, created or re-stamped
        try:
            auth_user = self._users.get_by_email(email)
        except Exception as e:
            logger.error(f"Error finding user by email: {e}")
            return MergeResult(
                success=False,
                error="Failed to find user",
                failed_steps=failed + [MergeStep.BIND_AUTH_USER],
            )

        if auth_user is None:
            try:
                auth_user = self._users.create(
                    session_id=auth_user_id,
                    email=email,
                    email_verified=True,
                )
            except Exception as e:
                logger.error(f"Error creating user: {e}")
                return MergeResult(
                    success=False,
                    error="Failed to create user",
                    failed_steps=failed + [MergeStep.BIND_AUTH_USER],
                )
        else:
            try:
                self._users.bind_auth_identity(auth_user.id, auth_user_id)
            except Exception as e:
                logger.error(f"Error updating session ID: {e}")
                failed.append(MergeStep.BIND_AUTH_USER)

        # (c) move images, then drop the anonymous row
        transferred = False
        if anonymous and anonymous.id != auth_user.id:
            try:
                self._images.reassign_owner(anonymous.id, auth_user.id)
                transferred = True
            except Exception as e:
                logger.error(f"Error transferring images: {e}")
                failed.append(MergeStep.TRANSFER_IMAGES)

            # Deleting the row cascades to its images, so it must wait for the transfer
            if transferred:
                try:
                    self._users.delete(anonymous.id)
                except Exception as e:
                    logger.error(f"Error deleting anonymous user: {e}")
                    failed.append(MergeStep.DELETE_ANONYMOUS)
            else:
                failed.append(MergeStep.DELETE_ANONYMOUS)

        # (d) everything the authenticated user owns is now permanent
        try:
            self._images.clear_expiration(auth_user.id)
        except Exception as e:
            logger.error(f"Error removing image expiration: {e}")
            failed.append(MergeStep.CLEAR_EXPIRATION)

        if transferred:
            logger.info(f"Merged anonymous user {anonymous.id} into {auth_user.id}")

        return MergeResult(
            success=True,
            user_id=auth_user.id,
            anonymous_user_id=anonymous.id if anonymous else None,
            transferred=transferred,
            failed_steps=failed,
        )
