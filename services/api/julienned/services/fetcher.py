"""
HTTP page fetching for recipe extraction.

Wraps httpx.AsyncClient with a realistic browser header set, redirect
following and bounded timeouts. Network failures come back as an
unsuccessful FetchResult rather than an exception so the extraction
pipeline can report them to the model as a tool error.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..settings import settings

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


@dataclass
class FetchResult:
    success: bool
    html: Optional[str] = None
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    error: Optional[str] = None


class PageFetcher:
    """
    Fetches recipe pages and probes image URLs.

    ``transport`` lets tests substitute an ``httpx.MockTransport``.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def _client(self, timeout: httpx.Timeout) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    def _headers(self, extra: Optional[dict] = None) -> dict:
        headers = {"User-Agent": settings.scraper_user_agent, **DEFAULT_HEADERS}
        if extra:
            headers.update({str(k): str(v) for k, v in extra.items()})
        return headers

    async def fetch(self, url: str, headers: Optional[dict] = None) -> FetchResult:
        timeout = httpx.Timeout(
            settings.fetch_timeout_seconds,
            read=settings.fetch_timeout_seconds,
            connect=settings.fetch_connect_timeout_seconds,
        )
        try:
            async with self._client(timeout) as client:
                response = await client.get(url, headers=self._headers(headers))
        except httpx.TimeoutException:
            logger.warning("Fetch timed out: %s", url)
            return FetchResult(success=False, error="Request timed out")
        except httpx.HTTPError as e:
            logger.warning("Fetch failed for %s: %s", url, e)
            return FetchResult(success=False, error=str(e) or "Fetch failed")

        if not response.is_success:
            return FetchResult(
                success=False,
                error=f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        logger.info("Fetched %s (%d, %d chars)", url, response.status_code, len(response.text))
        return FetchResult(
            success=True,
            html=response.text,
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
        )

    async def head_image(self, url: str) -> bool:
        """True if the URL answers a HEAD request with 2xx and an image/* type."""
        timeout = httpx.Timeout(settings.image_timeout_seconds)
        try:
            async with self._client(timeout) as client:
                response = await client.head(url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.info("Image HEAD failed for %s: %s", url, e)
            return False
        content_type = response.headers.get("content-type", "")
        return response.is_success and content_type.startswith("image/")
