"""
HTTP access shared by the source readers.

Every outbound request goes through ``fetch`` so that failures map onto
one pair of exceptions: ``TransportError`` when the host could not be
reached, ``FetchError`` when it answered with a non-2xx status.
"""

from typing import Any, Dict, Optional

import httpx
import logging

from core.config import Settings
from core.exceptions import FetchError, TransportError

logger = logging.getLogger(__name__)


def create_client(settings: Settings) -> httpx.AsyncClient:
    """One client per invocation, closed by the job when it finishes"""
    return httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT,
        headers={"user-agent": settings.USER_AGENT},
        follow_redirects=True,
    )


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> httpx.Response:
    """
    Issue one GET request. No retries: a failed request fails the task
    and the next scheduled run picks up from the persisted cursor.

    Raises:
        TransportError: DNS, connect, read or timeout failures
        FetchError: Non-2xx response
    """
    try:
        response = await client.get(url, params=params, headers=headers)
    except httpx.RequestError as e:
        raise TransportError(
            f"Request to {url} failed",
            url=url,
            original_exception=e
        )

    if not response.is_success:
        raise FetchError(
            f"Fetch failed: {response.status_code} {response.reason_phrase}",
            url=url,
            status_code=response.status_code,
            body=response.text
        )

    logger.debug(f"GET {url} -> {response.status_code} ({len(response.content)} bytes)")
    return response
