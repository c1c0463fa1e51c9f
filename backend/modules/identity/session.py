"""
Anonymous session identity.

Browsers hold a random token before any account exists and send it with
each request, either in a header or a cookie. Tokens are self-asserted:
there is nothing the server can check them against.
"""

import re
import uuid
from typing import Optional

from fastapi import Request

from shared.config import Settings

# Browser tokens are UUIDs; auth user ids stamped after a merge are too.
_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


def new_session_id() -> str:
    """Generate an unguessable session token."""
    return str(uuid.uuid4())


def is_valid_session_id(value: Optional[str]) -> bool:
    """Accept non-empty printable tokens of up to 128 characters."""
    return bool(value) and _SESSION_ID_PATTERN.match(value) is not None


def read_session_id(request: Request, settings: Settings) -> Optional[str]:
    """
    Read the session token from the request.

    The header wins over the cookie. Malformed tokens are ignored.
    """
    candidate = request.headers.get(settings.session_header_name)
    if not candidate:
        candidate = request.cookies.get(settings.session_cookie_name)
    return candidate if is_valid_session_id(candidate) else None
