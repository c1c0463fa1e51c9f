"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

When we're ready to extract a module to a microservice, we only need
to change the implementation here to an HTTP client.
"""

from typing import TYPE_CHECKING

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IAuthService
    from modules.identity.interfaces import IIdentityService, IUserRepository
    from modules.images.interfaces import IImageService, IImageRepository, IObjectStorage
    from modules.images.cleanup import CleanupService


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self) -> None:
        self._auth_service: "IAuthService | None" = None
        self._user_repository: "IUserRepository | None" = None
        self._image_repository: "IImageRepository | None" = None
        self._object_storage: "IObjectStorage | None" = None
        self._identity_service: "IIdentityService | None" = None
        self._image_service: "IImageService | None" = None
        self._cleanup_service: "CleanupService | None" = None

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService()
        return self._auth_service

    @property
    def user_repository(self) -> "IUserRepository":
        """Get the user repository instance."""
        if self._user_repository is None:
            from modules.identity.repository import UserRepository
            from shared.database import get_supabase_client
            self._user_repository = UserRepository(get_supabase_client())
        return self._user_repository

    @property
    def image_repository(self) -> "IImageRepository":
        """Get the image repository instance."""
        if self._image_repository is None:
            from modules.images.repository import ImageRepository
            from shared.database import get_supabase_client
            self._image_repository = ImageRepository(get_supabase_client())
        return self._image_repository

    @property
    def object_storage(self) -> "IObjectStorage":
        """Get the object storage instance."""
        if self._object_storage is None:
            from modules.images.storage import SupabaseObjectStorage
            from shared.config import get_settings
            from shared.database import get_supabase_client
            self._object_storage = SupabaseObjectStorage(
                get_supabase_client(),
                bucket=get_settings().storage_bucket,
            )
        return self._object_storage

    @property
    def identity(self) -> "IIdentityService":
        """Get the identity service instance."""
        if self._identity_service is None:
            from modules.identity.service import IdentityService
            from shared.config import get_settings
            self._identity_service = IdentityService(
                users=self.user_repository,
                images=self.image_repository,
                max_merge_attempts=get_settings().merge_max_attempts,
            )
        return self._identity_service

    @property
    def images(self) -> "IImageService":
        """Get the image service instance."""
        if self._image_service is None:
            from modules.images.service import ImageService
            from shared.config import get_settings
            settings = get_settings()
            self._image_service = ImageService(
                images=self.image_repository,
                users=self.user_repository,
                storage=self.object_storage,
                max_upload_size=settings.max_upload_size,
                warn_upload_size=settings.warn_upload_size,
            )
        return self._image_service

    @property
    def cleanup(self) -> "CleanupService":
        """Get the cleanup sweep instance."""
        if self._cleanup_service is None:
            from modules.images.cleanup import CleanupService
            self._cleanup_service = CleanupService(
                images=self.image_repository,
                storage=self.object_storage,
            )
        return self._cleanup_service

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._auth_service = None
        self._user_repository = None
        self._image_repository = None
        self._object_storage = None
        self._identity_service = None
        self._image_service = None
        self._cleanup_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_identity_service() -> "IIdentityService":
    """FastAPI dependency for identity service."""
    return get_container().identity


def get_image_service() -> "IImageService":
    """FastAPI dependency for image service."""
    return get_container().images


def get_cleanup_service() -> "CleanupService":
    """FastAPI dependency for the cleanup sweep."""
    return get_container().cleanup
