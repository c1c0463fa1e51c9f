"""
Image API endpoints.

Provides the upload paths, the gallery and public feed, the image
mutations, and the scheduled cleanup endpoint.
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile
from fastapi.responses import JSONResponse

from api.dependencies import get_cleanup_service, get_image_service
from api.models.errors import CronErrorResponse
from api.middleware.auth import get_optional_user
from shared.config import Settings, get_settings
from shared.models import ActionResult, AuthenticatedUser

from .cleanup import CleanupService
from .exceptions import CleanupError
from .interfaces import IImageService
from .models import (
    Image,
    PublicImagePage,
    RemoveExpirationRequest,
    SaveImageRequest,
    VisibilityRequest,
)

router = APIRouter()
cron_router = APIRouter()


@router.post("", response_model=Image, status_code=201)
async def save_image_metadata(
    request: SaveImageRequest,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IImageService = Depends(get_image_service),
) -> Image:
    """
    Record an image the client already processed and uploaded to storage.

    Unclaimed images expire three days after upload.
    """
    return await service.save_image_metadata(
        request.user_id,
        request.blob_url,
        request.original_filename,
        request.file_size,
        is_claimed=request.is_claimed,
        auth_user=user,
    )


@router.post("/upload", response_model=Image, status_code=201)
async def upload_image(
    user_id: str = Form(..., min_length=1),
    file: UploadFile = File(...),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IImageService = Depends(get_image_service),
    settings: Settings = Depends(get_settings),
) -> Image:
    """
    Upload an image to be processed on the server.

    The background is removed, the image is mirrored, stored as PNG, and
    recorded for the given user.
    """
    # One byte past the limit is enough for validation to reject it
    data = await file.read(settings.max_upload_size + 1)
    return await service.upload_image(
        user_id,
        file.filename or "image",
        file.content_type or "",
        data,
        auth_user=user,
    )


@router.get("", response_model=list[Image])
async def get_user_images(
    user_id: str = Query(..., min_length=1, description="Owning user ID"),
    service: IImageService = Depends(get_image_service),
) -> list[Image]:
    """List a user's images, most recent first."""
    return await service.get_user_images(user_id)


@router.get("/public", response_model=PublicImagePage)
async def get_public_images(
    page: int = Query(default=0, ge=0, description="Page number (0-indexed)"),
    service: IImageService = Depends(get_image_service),
) -> PublicImagePage:
    """Get one page of the public feed, most recent first."""
    return await service.get_public_images(page)


@router.post("/remove-expiration", response_model=ActionResult)
async def remove_expiration(
    request: RemoveExpirationRequest,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IImageService = Depends(get_image_service),
) -> ActionResult:
    """Make all of a user's images permanent."""
    await service.remove_expiration(request.user_id, auth_user=user)
    return ActionResult(success=True)


@router.delete("/{image_id}", response_model=ActionResult)
async def delete_image(
    image_id: str,
    user_id: str = Query(..., min_length=1, description="Acting user ID"),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IImageService = Depends(get_image_service),
) -> ActionResult:
    """Delete an image and its stored file."""
    await service.delete_image(image_id, user_id, auth_user=user)
    return ActionResult(success=True)


@router.patch("/{image_id}/visibility", response_model=ActionResult)
async def toggle_image_visibility(
    image_id: str,
    request: VisibilityRequest,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IImageService = Depends(get_image_service),
) -> ActionResult:
    """Publish an image to the public feed or take it down."""
    await service.toggle_image_visibility(
        image_id,
        request.user_id,
        request.is_public,
        auth_user=user,
    )
    return ActionResult(success=True)


def _is_cron_authorized(authorization: Optional[str], settings: Settings) -> bool:
    if not settings.cron_secret or not authorization:
        return False
    return hmac.compare_digest(authorization, f"Bearer {settings.cron_secret}")


@cron_router.get("/cleanup")
async def cleanup_expired_images(
    authorization: Optional[str] = Header(default=None),
    service: CleanupService = Depends(get_cleanup_service),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """
    Delete every image past its expiration.

    Called by the scheduler with `Authorization: Bearer <CRON_SECRET>`.
    """
    if not _is_cron_authorized(authorization, settings):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        result = await service.run()
    except CleanupError as e:
        body = CronErrorResponse(error=e.message, deleted=0)
        return JSONResponse(body.model_dump(), status_code=500)

    return JSONResponse(result.model_dump(exclude_none=True))
