"""
Identity API endpoints.

Provides session resolution, email claiming, sign-in merges, account
recovery, and the auth provider callback.
"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse

from api.dependencies import get_auth_service, get_identity_service
from api.middleware.auth import get_current_user
from modules.auth.interfaces import IAuthService
from shared.config import Settings, get_settings
from shared.exceptions import AuthenticationError, MirrorcutError, ValidationError
from shared.models import ActionResult, AuthenticatedUser

from .interfaces import IIdentityService
from .models import (
    LinkEmailRequest,
    MergeRequest,
    MergeResult,
    RecoverRequest,
    SessionRequest,
    SessionResponse,
    User,
)
from .exceptions import InvalidSessionError
from .session import (
    SESSION_COOKIE_MAX_AGE,
    is_valid_session_id,
    new_session_id,
    read_session_id,
)

logger = logging.getLogger(__name__)

router = APIRouter()
auth_router = APIRouter()


def _set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=SESSION_COOKIE_MAX_AGE,
        samesite="lax",
    )


@router.post("/session", response_model=SessionResponse)
async def resolve_session(
    request: Request,
    response: Response,
    body: Optional[SessionRequest] = None,
    service: IIdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_settings),
) -> SessionResponse:
    """
    Resolve the caller's anonymous session to a user.

    Uses the session id from the body, then the header, then the cookie.
    A new session is issued when none is supplied.
    """
    session_id = body.session_id if body and body.session_id else None
    if session_id is not None and not is_valid_session_id(session_id):
        raise InvalidSessionError()
    session_id = session_id or read_session_id(request, settings) or new_session_id()

    user = await service.get_or_create_user(session_id)
    _set_session_cookie(response, session_id, settings)
    return SessionResponse(session_id=session_id, user=user)


@router.get("/me", response_model=User)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """
    Get the user row bound to the signed-in identity.

    Requires authentication.
    """
    return await service.get_user_for_identity(user.id, user.email)


@router.post("/link-email", response_model=User)
async def link_email(
    request: LinkEmailRequest,
    service: IIdentityService = Depends(get_identity_service),
) -> User:
    """
    Claim an anonymous session with a verified email.

    All of the session's images stop expiring.
    """
    return await service.link_email_to_user(request.session_id, request.email)


@router.post("/merge", response_model=MergeResult)
async def merge_anonymous_user(
    request: MergeRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IIdentityService = Depends(get_identity_service),
) -> MergeResult:
    """
    Fold an anonymous session into the signed-in identity.

    Requires authentication; the signed-in identity's email is used.
    """
    if not user.email:
        raise ValidationError("Signed-in identity has no email", code="EMAIL_REQUIRED")
    return await service.merge_anonymous_to_auth_user(
        request.anonymous_session_id,
        user.id,
        user.email,
    )


@router.post("/recover", response_model=ActionResult)
async def recover_account(
    request: RecoverRequest,
    service: IIdentityService = Depends(get_identity_service),
) -> ActionResult:
    """Check that a verified account exists for an email."""
    message = await service.recover_by_email(request.email)
    return ActionResult(success=True, message=message)


@auth_router.get("/callback")
async def auth_callback(
    request: Request,
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    anonymous_session_id: Optional[str] = None,
    auth: IAuthService = Depends(get_auth_service),
    service: IIdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """
    Complete a magic link / OAuth sign-in.

    Exchanges the code, reconciles the identity with its user row (merging
    the browser's anonymous session when there is one), and redirects
    back to the frontend with `?auth=verified` or `?auth=error`.
    """
    origin = settings.frontend_url

    if error:
        logger.error(f"Auth error: {error} {error_description or ''}")
        message = quote(error_description or "Authentication failed")
        return RedirectResponse(f"{origin}?auth=error&message={message}")

    if not code:
        return RedirectResponse(f"{origin}?auth=error")

    try:
        auth_user = await auth.exchange_code(code)
    except AuthenticationError as e:
        logger.error(f"Session exchange error: {e.message}")
        return RedirectResponse(f"{origin}?auth=error")

    anonymous = anonymous_session_id or read_session_id(request, settings)
    try:
        if anonymous and is_valid_session_id(anonymous) and anonymous != auth_user.id:
            result = await service.merge_anonymous_to_auth_user(
                anonymous, auth_user.id, auth_user.email
            )
            if not result.success:
                return RedirectResponse(f"{origin}?auth=error")
        else:
            await service.reconcile_auth_user(auth_user.id, auth_user.email)
    except MirrorcutError as e:
        logger.error(f"Error linking signed-in user: {e.message}")
        return RedirectResponse(f"{origin}?auth=error")

    redirect = RedirectResponse(f"{origin}?auth=verified")
    _set_session_cookie(redirect, auth_user.id, settings)
    return redirect
