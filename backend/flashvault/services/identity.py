"""
FlashVault Backend — Identity Provider Client
===============================================

What:  Asks the hosted identity provider which user owns an access token.
Why:   Sessions are issued and signed by the provider; the backend never
       sees passwords and never verifies signatures itself.
How:   GET {IDENTITY_PROVIDER_URL}/auth/v1/user with the token as a Bearer
       credential and the project API key as `apikey`. The provider answers
       200 with the user object, or 4xx when the token is bad.
Who:   Called by auth.get_current_user() for every /api request.

Resilience Strategy:
    - Tenacity retries transport failures only (connect errors, timeouts),
      with exponential backoff and jitter.
    - A 4xx answer is a verdict, not a glitch: it becomes AuthError at once.
    - A 5xx answer, or transport failure after the last retry, becomes
      IdentityProviderUnavailable (503) so clients can tell "log in again"
      apart from "try again later".
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from flashvault.config import settings
from flashvault.exceptions import AuthError, IdentityProviderUnavailable

logger = logging.getLogger(__name__)

USER_ENDPOINT = "/auth/v1/user"


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: Optional[str] = None


class IdentityProvider:
    """
    Thin async client for the provider's user endpoint.

    Args:
        base_url: Provider root URL; defaults to IDENTITY_PROVIDER_URL.
        api_key: Project API key; defaults to IDENTITY_PROVIDER_API_KEY.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (settings.identity_provider_url if base_url is None else base_url).rstrip("/")
        self.api_key = settings.identity_provider_api_key if api_key is None else api_key
        self.timeout = settings.auth_timeout_seconds if timeout is None else timeout
        self._transport = transport

    async def authenticate(self, credential: str) -> AuthenticatedUser:
        """
        Resolve a credential to its user.

        Raises:
            AuthError: empty credential, or the provider rejected it.
            IdentityProviderUnavailable: provider unreachable or failing.
        """
        if not credential:
            raise AuthError("Unauthorized")
        if not self.base_url:
            logger.error("IDENTITY_PROVIDER_URL is not configured; rejecting credential")
            raise AuthError("Invalid token")

        try:
            response = await self._fetch_user(credential)
        except httpx.TransportError as exc:
            logger.error("Identity provider unreachable after retries: %s", exc)
            raise IdentityProviderUnavailable(
                context={"error_type": type(exc).__name__}
            ) from exc

        if response.status_code >= 500:
            logger.error("Identity provider answered %d", response.status_code)
            raise IdentityProviderUnavailable(context={"status_code": response.status_code})
        if response.status_code != 200:
            logger.info("Credential rejected by identity provider (%d)", response.status_code)
            raise AuthError("Invalid token")

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Identity provider returned a non-JSON body")
            raise IdentityProviderUnavailable(context={"reason": "invalid body"}) from exc

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise AuthError("Invalid token")
        return AuthenticatedUser(id=str(user_id), email=payload.get("email"))

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.auth_retry_attempts),
        wait=wait_exponential_jitter(
            initial=settings.auth_retry_min_wait,
            max=settings.auth_retry_max_wait,
            jitter=settings.auth_retry_min_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _fetch_user(self, credential: str) -> httpx.Response:
        start_time = time.time()
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(
                USER_ENDPOINT,
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {credential}",
                },
            )
        logger.debug(
            "Identity lookup answered %d in %.0fms",
            response.status_code,
            (time.time() - start_time) * 1000,
        )
        return response


# Module-level singleton
identity_provider = IdentityProvider()
