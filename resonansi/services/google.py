"""Google identity: exchange a client-obtained OAuth access token for a verified profile."""

import logging
import time
from typing import TYPE_CHECKING

import httpx

from resonansi.core.errors import UnauthorizedError
from resonansi.schemas.auth import ExternalProfile

if TYPE_CHECKING:
    from resonansi.core.config import Settings

logger = logging.getLogger(__name__)

MSG_GOOGLE_FAILED = "Google authentication failed"


async def fetch_google_profile(access_token: str, settings: "Settings") -> ExternalProfile:
    """
    Call Google's userinfo endpoint with the bearer token and return the profile.

    Raises UnauthorizedError when Google is unreachable, rejects the token, or
    returns a profile without a verified email.
    """
    timeout = httpx.Timeout(settings.GOOGLE_REQUEST_TIMEOUT_SEC)
    headers = {"Authorization": f"Bearer {access_token}"}
    start = time.perf_counter()
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(settings.GOOGLE_USERINFO_URL, headers=headers)
    except httpx.HTTPError as e:
        logger.warning(
            "Google userinfo request failed",
            extra={"latency_seconds": time.perf_counter() - start, "error": type(e).__name__},
        )
        raise UnauthorizedError(MSG_GOOGLE_FAILED) from e

    if response.status_code != 200:
        logger.warning(
            "Google userinfo rejected token",
            extra={"status_code": response.status_code},
        )
        raise UnauthorizedError(MSG_GOOGLE_FAILED)

    try:
        data = response.json()
    except ValueError as e:
        raise UnauthorizedError(MSG_GOOGLE_FAILED) from e
    if not isinstance(data, dict):
        logger.warning("Google userinfo body is not an object")
        raise UnauthorizedError(MSG_GOOGLE_FAILED)

    external_id = str(data.get("id") or data.get("sub") or "")
    email = data.get("email") or ""
    verified = data.get("verified_email", data.get("email_verified", False))
    if not external_id or not email or verified is not True:
        logger.warning("Google profile incomplete or email unverified")
        raise UnauthorizedError(MSG_GOOGLE_FAILED)

    return ExternalProfile(
        provider="google",
        external_id=external_id,
        email=email,
        display_name=data.get("name") or "",
        avatar_url=data.get("picture"),
    )
