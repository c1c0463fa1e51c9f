"""
User repository for database access.

Encapsulates all Supabase queries and data mapping for the `users` table.
"""

from typing import Optional, Any

from shared.repository import BaseRepository
from .interfaces import IUserRepository
from .models import User


class UserRepository(BaseRepository[User], IUserRepository):
    """
    Repository for user data access.

    Note: This repository does NOT perform authorization checks.
    The service layer is responsible for deciding who may change what.
    """

    TABLE = "users"

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self._first(self._db.table(self.TABLE).select("*").eq("id", user_id).execute())

    def get_by_session_id(self, session_id: str) -> Optional[User]:
        return self._first(
            self._db.table(self.TABLE).select("*").eq("session_id", session_id).execute()
        )

    def get_by_email(self, email: str, verified_only: bool = False) -> Optional[User]:
        query = self._db.table(self.TABLE).select("*").eq("email", email)
        if verified_only:
            query = query.eq("email_verified", True)
        return self._first(query.execute())

    def create(
        self,
        session_id: str,
        email: Optional[str] = None,
        email_verified: bool = False,
    ) -> User:
        """
        Create a new user record.

        Returns:
            Created User with generated ID and timestamp.
        """
        data: dict[str, Any] = {"session_id": session_id}
        if email is not None:
            data["email"] = email
            data["email_verified"] = email_verified

        result = self._db.table(self.TABLE).insert(data).execute()
        return self._map_to_user(result.data[0])

    def link_email(self, session_id: str, email: str) -> Optional[User]:
        result = self._db.table(self.TABLE).update({
            "email": email,
            "email_verified": True,
        }).eq("session_id", session_id).execute()
        return self._first(result)

    def bind_auth_identity(self, user_id: str, auth_user_id: str) -> None:
        self._db.table(self.TABLE).update({
            "session_id": auth_user_id,
            "email_verified": True,
        }).eq("id", user_id).execute()

    def delete(self, user_id: str) -> None:
        """
        Delete a user.

        Note: Any images still owned by the user are deleted via CASCADE.
        """
        self._db.table(self.TABLE).delete().eq("id", user_id).execute()

    # -------------------------------------------------------------------------
    # Private mapping methods
    # -------------------------------------------------------------------------

    def _first(self, result: Any) -> Optional[User]:
        if not result.data:
            return None
        return self._map_to_user(result.data[0])

    def _map_to_user(self, data: dict[str, Any]) -> User:
        """Map database row to User model."""
        return User(
            id=str(data["id"]),
            session_id=data["session_id"],
            email=data.get("email"),
            email_verified=data.get("email_verified", False),
            created_at=data["created_at"],
        )
