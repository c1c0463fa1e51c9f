"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
JWT helpers and in-memory stand-ins for the repositories and storage.
"""

import uuid
from datetime import datetime, timezone, timedelta
from typing import Any, Optional

import jwt  # PyJWT
import pytest

from api.dependencies import reset_container
from modules.auth.service import reset_auth_service
from modules.identity.models import User
from modules.images.models import Image, PublicImage


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

STORAGE_URL = "https://test.supabase.co/storage/v1/object/public/images"


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    email_verified: bool = True,
) -> str:
    """
    Create a test JWT token for authentication.

    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token
        email_verified: Whether the email should be marked as verified

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": user_id,
        "email": email,
        "email_confirmed_at": now.isoformat() if email_verified else None,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


# =============================================================================
# In-memory repositories
# =============================================================================


class FakeUserRepository:
    """In-memory IUserRepository. Set `fail_on` to make methods raise."""

    def __init__(self) -> None:
        self.rows: dict[str, User] = {}
        self.fail_on: set[str] = set()

    def _check(self, method: str) -> None:
        if method in self.fail_on:
            raise RuntimeError(f"{method} failed")

    def add(
        self,
        session_id: str,
        email: Optional[str] = None,
        email_verified: bool = False,
        user_id: Optional[str] = None,
    ) -> User:
        user = User(
            id=user_id or str(uuid.uuid4()),
            session_id=session_id,
            email=email,
            email_verified=email_verified,
            created_at=datetime.now(timezone.utc),
        )
        self.rows[user.id] = user
        return user

    def get_by_id(self, user_id: str) -> Optional[User]:
        self._check("get_by_id")
        return self.rows.get(user_id)

    def get_by_session_id(self, session_id: str) -> Optional[User]:
        self._check("get_by_session_id")
        return next((u for u in self.rows.values() if u.session_id == session_id), None)

    def get_by_email(self, email: str, verified_only: bool = False) -> Optional[User]:
        self._check("get_by_email")
        for user in self.rows.values():
            if user.email == email and (user.email_verified or not verified_only):
                return user
        return None

    def create(
        self,
        session_id: str,
        email: Optional[str] = None,
        email_verified: bool = False,
    ) -> User:
        self._check("create")
        if self.get_by_session_id(session_id) is not None:
            raise RuntimeError("duplicate key value violates unique constraint")
        return self.add(session_id, email=email, email_verified=email_verified)

    def link_email(self, session_id: str, email: str) -> Optional[User]:
        self._check("link_email")
        user = self.get_by_session_id(session_id)
        if user is None:
            return None
        updated = user.model_copy(update={"email": email, "email_verified": True})
        self.rows[user.id] = updated
        return updated

    def bind_auth_identity(self, user_id: str, auth_user_id: str) -> None:
        self._check("bind_auth_identity")
        user = self.rows[user_id]
        self.rows[user_id] = user.model_copy(
            update={"session_id": auth_user_id, "email_verified": True}
        )

    def delete(self, user_id: str) -> None:
        self._check("delete")
        self.rows.pop(user_id, None)


class FakeImageRepository:
    """In-memory IImageRepository. Set `fail_on` to make methods raise."""

    def __init__(self, users: Optional[FakeUserRepository] = None) -> None:
        self.rows: dict[str, Image] = {}
        self.users = users
        self.fail_on: set[str] = set()

    def _check(self, method: str) -> None:
        if method in self.fail_on:
            raise RuntimeError(f"{method} failed")

    def add(
        self,
        user_id: str,
        expires_at: Optional[datetime] = None,
        is_public: bool = False,
        created_at: Optional[datetime] = None,
        image_id: Optional[str] = None,
    ) -> Image:
        image_id = image_id or str(uuid.uuid4())
        image = Image(
            id=image_id,
            user_id=user_id,
            blob_url=f"{STORAGE_URL}/{user_id}/{image_id}.png",
            original_filename="photo.jpg",
            file_size=1024,
            created_at=created_at or datetime.now(timezone.utc),
            expires_at=expires_at,
            is_public=is_public,
        )
        self.rows[image.id] = image
        return image

    def owned_by(self, user_id: str) -> list[Image]:
        return [image for image in self.rows.values() if image.user_id == user_id]

    def create(self, data: dict[str, Any]) -> Image:
        self._check("create")
        image = Image(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **data,
        )
        self.rows[image.id] = image
        return image

    def get_by_id(self, image_id: str) -> Optional[Image]:
        self._check("get_by_id")
        return self.rows.get(image_id)

    def list_by_user(self, user_id: str) -> list[Image]:
        self._check("list_by_user")
        return sorted(self.owned_by(user_id), key=lambda i: i.created_at, reverse=True)

    def list_public(self, offset: int, limit: int) -> tuple[list[PublicImage], int]:
        self._check("list_public")
        public = sorted(
            (i for i in self.rows.values() if i.is_public),
            key=lambda i: i.created_at,
            reverse=True,
        )
        window = []
        for image in public[offset:offset + limit]:
            owner = self.users.rows.get(image.user_id) if self.users else None
            window.append(
                PublicImage(**image.model_dump(), owner_email=owner.email if owner else None)
            )
        return window, len(public)

    def set_visibility(self, image_id: str, is_public: bool) -> None:
        self._check("set_visibility")
        image = self.rows[image_id]
        self.rows[image_id] = image.model_copy(update={"is_public": is_public})

    def delete(self, image_id: str) -> None:
        self._check("delete")
        self.rows.pop(image_id, None)

    def clear_expiration(self, user_id: str) -> None:
        self._check("clear_expiration")
        for image in self.owned_by(user_id):
            self.rows[image.id] = image.model_copy(update={"expires_at": None})

    def reassign_owner(self, from_user_id: str, to_user_id: str) -> None:
        self._check("reassign_owner")
        for image in self.owned_by(from_user_id):
            self.rows[image.id] = image.model_copy(
                update={"user_id": to_user_id, "expires_at": None}
            )

    def list_expired(self, cutoff: datetime) -> list[Image]:
        self._check("list_expired")
        return [
            image for image in self.rows.values()
            if image.expires_at is not None and image.expires_at < cutoff
        ]

    def delete_expired(self, image_ids: list[str], cutoff: datetime) -> list[Image]:
        self._check("delete_expired")
        deleted = []
        for image_id in image_ids:
            image = self.rows.get(image_id)
            if image and image.expires_at is not None and image.expires_at < cutoff:
                deleted.append(self.rows.pop(image_id))
        return deleted


class FakeObjectStorage:
    """In-memory IObjectStorage keyed by object path."""

    bucket = "images"

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.fail_on: set[str] = set()

    def upload(self, path: str, data: bytes, content_type: str = "image/png") -> str:
        if "upload" in self.fail_on:
            raise RuntimeError("upload failed")
        self.objects[path] = data
        return f"{STORAGE_URL}/{path}"

    def remove(self, paths: list[str]) -> None:
        if "remove" in self.fail_on:
            raise RuntimeError("remove failed")
        for path in paths:
            self.objects.pop(path, None)
            self.removed.append(path)

    def path_from_url(self, url: str) -> Optional[str]:
        prefix = f"{STORAGE_URL}/"
        return url[len(prefix):] if url.startswith(prefix) else None


class FakeBackgroundRemover:
    """Passes images through untouched, or fails when told to."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    def remove(self, data: bytes) -> bytes:
        self.calls += 1
        if self.fail:
            raise RuntimeError("model failed")
        return data


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the auth singleton and the service container around each test."""
    reset_auth_service()
    reset_container()
    yield
    reset_auth_service()
    reset_container()


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def image_repo(user_repo: FakeUserRepository) -> FakeImageRepository:
    return FakeImageRepository(user_repo)


@pytest.fixture
def object_storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "test-user-123"


@pytest.fixture
def test_user_email() -> str:
    """Provide a consistent test user email."""
    return "test@example.com"


@pytest.fixture
def auth_token(test_user_id: str, test_user_email: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id, email=test_user_email)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}
