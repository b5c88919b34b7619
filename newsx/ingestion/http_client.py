"""
Shared HTTP Client
==================

One pooled aiohttp session reused by every feed and article request of a
crawl cycle.
"""

import asyncio
import ssl
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp
import certifi

from ..config.settings import CrawlerSettings
from ..utils.exceptions import HttpRequestError, ErrorCode
from ..utils.logging import get_logger_for_component


@dataclass
class HttpResponse:
    """Status and decoded body of a completed request."""

    status: int
    body: str
    url: str

    @property
    def ok(self) -> bool:
        return self.status < 400


class HttpClient:
    """Keep-alive HTTP client with browser-like headers.

    The connector allows ``feed_concurrency * item_concurrency`` sockets in
    total, so the two crawl semaphores are the effective limit.

    Usage:
        async with HttpClient(settings.crawler) as client:
            xml = await client.fetch_text(feed_url)
    """

    def __init__(self, settings: Optional[CrawlerSettings] = None):
        self.settings = settings or CrawlerSettings()
        self.logger = get_logger_for_component("http_client")
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,"
                      "application/rss+xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.settings.accept_language,
            "Accept-Encoding": "gzip, deflate",
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                ssl=self.ssl_context,
                limit=self.settings.max_connections,
                limit_per_host=self.settings.connections_per_host,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout),
                headers=self.default_headers,
            )
        return self._session

    async def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """GET a URL and return its status and body.

        Args:
            url: Absolute URL
            headers: Extra headers merged over the defaults
            timeout: Total timeout override in seconds

        Raises:
            HttpRequestError: On network failure or timeout
        """
        session = self._get_session()
        # without an override the session ClientTimeout applies
        kwargs = {"timeout": aiohttp.ClientTimeout(total=timeout)} if timeout else {}

        try:
            async with session.get(url, headers=headers, **kwargs) as response:
                body = await response.text(errors="replace")
                return HttpResponse(status=response.status, body=body, url=str(response.url))

        except asyncio.TimeoutError as e:
            raise HttpRequestError(
                f"Request timed out: {str(e) or type(e).__name__}",
                url=url,
                error_code=ErrorCode.HTTP_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise HttpRequestError(
                f"Request failed: {str(e) or type(e).__name__}",
                url=url,
                error_code=ErrorCode.HTTP_NETWORK_ERROR,
            ) from e

    async def fetch_text(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """GET a URL and return its body, treating HTTP errors as failures.

        Raises:
            HttpRequestError: On network failure, timeout or status >= 400
        """
        response = await self.get(url, headers=headers, timeout=timeout)
        if not response.ok:
            raise HttpRequestError(
                f"HTTP {response.status}",
                url=url,
                status=response.status,
                error_code=ErrorCode.HTTP_STATUS_ERROR,
            )
        return response.body

    async def close(self) -> None:
        """Close the session and release pooled connections."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "HttpClient":
        self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
