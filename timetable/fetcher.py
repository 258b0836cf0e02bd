from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from .errors import NetworkError


logger = logging.getLogger(__name__)


USER_AGENT = "timetable-feed/0.1 (+https://github.com/)"
ATTEMPTS = 3


def build_headers() -> dict[str, str]:
    return {
        "Accept": "text/calendar, text/plain;q=0.9, */*;q=0.5",
        "Accept-Language": "en-US,en;q=0.9",
        "User-Agent": USER_AGENT,
    }
def describe_url(url: str) -> str:
    # Subscription URLs often embed a private token. Only the host is logged.
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return "<invalid url>"
    return host or "<invalid url>"


def _check_url(url: str) -> None:
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError as e:
        raise NetworkError(f"Invalid calendar URL ({describe_url(url)})") from e
    if parts.scheme not in ("http", "https", "webcal") or not host:
        raise NetworkError(f"Invalid calendar URL ({describe_url(url)})")


async def fetch_calendar(client: httpx.AsyncClient, url: str) -> str:
    """Download the raw calendar text behind ``url``.

    Raises NetworkError once every attempt has failed, or straight away when
    the URL is not a usable http(s) or webcal address.
    """
    _check_url(url)
    if url.startswith("webcal:"):
        url = "https:" + url[len("webcal:"):]
    headers = build_headers()
    last_error: Optional[Exception] = None
    for attempt in range(ATTEMPTS):
        try:
            resp = await client.get(
                url,
                headers=headers,
                timeout=httpx.Timeout(15.0, connect=10.0),
                follow_redirects=True,
            )
            resp.raise_for_status()
            return resp.text
        except httpx.HTTPStatusError as e:
            last_error = e
            logger.warning(
                "Fetch attempt %s for %s returned HTTP %s",
                attempt + 1, describe_url(url), e.response.status_code,
            )
        except httpx.HTTPError as e:
            last_error = e
            logger.warning("Fetch attempt %s for %s failed: %s", attempt + 1, describe_url(url), e)
        except (httpx.InvalidURL, ValueError) as e:
            raise NetworkError(f"Invalid calendar URL ({describe_url(url)})") from e
    raise NetworkError(
        f"Failed to fetch calendar from {describe_url(url)} after {ATTEMPTS} attempts"
    ) from last_error
