"""
FlashVault Backend — Access Gate
==================================

What:  FastAPI dependency that admits a request only when it carries a
       credential the identity provider accepts.
How:   `Authorization: Bearer <token>` is preferred; without it the session
       cookie (SESSION_COOKIE_NAME) is used. The resulting user id is stored
       on `request.state.user_id` for the access log and returned to the
       route, which scopes every query by it.

Failure modes:
    no credential at all        → AuthError("Unauthorized")      → 401
    credential rejected         → AuthError("Invalid token")     → 401
    provider down               → IdentityProviderUnavailable   → 503
"""

from typing import Optional

from fastapi import Request

from flashvault.config import settings
from flashvault.exceptions import AuthError
from flashvault.services.identity import AuthenticatedUser, identity_provider


def extract_credential(request: Request) -> Optional[str]:
    """Bearer token if present, else the session cookie, else None."""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    cookie = request.cookies.get(settings.session_cookie_name)
    return cookie or None


async def get_current_user(request: Request) -> AuthenticatedUser:
    credential = extract_credential(request)
    if credential is None:
        raise AuthError("Unauthorized")

    user = await identity_provider.authenticate(credential)
    request.state.user_id = user.id
    return user
