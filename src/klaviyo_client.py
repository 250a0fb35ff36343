"""Klaviyo API client for profile property updates."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from .config import Settings
from .models import ProfileUpdate

logger = logging.getLogger(__name__)

JSON_API_MEDIA_TYPE = "application/vnd.api+json"


class KlaviyoError(Exception):
    """Base error for Klaviyo profile updates."""


class KlaviyoAPIError(KlaviyoError):
    """Raised when Klaviyo answers a profile update with a non-2xx status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Klaviyo API error {status_code}: {body}")


class KlaviyoConfigError(KlaviyoError):
    """Raised when the Klaviyo API key is not configured."""


def get_headers(settings: Settings) -> dict:
    """Get headers for Klaviyo API requests."""
    return {
        "Authorization": f"Klaviyo-API-Key {settings.klaviyo_api_key}",
        "Content-Type": JSON_API_MEDIA_TYPE,
        "Accept": JSON_API_MEDIA_TYPE,
        "revision": settings.klaviyo_revision,
    }


def _build_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.klaviyo_timeout_seconds)


async def update_profile(update: ProfileUpdate, settings: Settings) -> Optional[dict]:
    """
    PATCH custom properties onto a Klaviyo profile.

    Args:
        update: Profile id and the properties to set
        settings: Service settings with the Klaviyo key and revision

    Returns:
        Klaviyo's JSON body, or None for 204 No Content

    Raises:
        KlaviyoConfigError: If no API key is configured
        KlaviyoAPIError: If Klaviyo returns a non-2xx status
    """
    if not settings.klaviyo_api_key:
        raise KlaviyoConfigError("KLAVIYO_API_KEY is not configured")

    url = f"{settings.klaviyo_api_url.rstrip('/')}/api/profiles/{quote(update.profile_id, safe='')}/"
    logger.debug(f"PATCH {url}")

    async with _build_client(settings) as client:
        response = await client.patch(
            url,
            headers=get_headers(settings),
            json=update.to_payload(),
        )

    if not response.is_success:
        logger.error(f"Klaviyo profile update failed: {response.status_code} - {response.text}")
        raise KlaviyoAPIError(response.status_code, response.text)

    # 204 No Content is success for PATCH
    if response.status_code == 204 or not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        logger.warning("Klaviyo returned a non-JSON success body")
        return None
