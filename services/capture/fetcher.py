# services/capture/fetcher.py
"""
Network retrieval for the capture pipeline.

A single GET per URL with a fixed identifying user agent.  Any non‑2xx status
or transport failure becomes a ``CaptureError`` so the scheduler can apply its
retry policy.  No cookies, no JavaScript, no per‑request timeout beyond what
is configured (``None`` keeps the transport default).
"""

import time
from typing import Optional

import httpx
from loguru import logger
from prometheus_client import Counter, Histogram

from .config_loader import FetchSettings
from .exceptions import CaptureError

# Metrics for monitoring
FETCH_REQUESTS = Counter('capture_requests_total', 'Total number of page fetches')
FETCH_ERRORS = Counter('capture_errors_total', 'Total number of failed page fetches')
FETCH_DURATION = Histogram('capture_duration_seconds', 'Time spent fetching pages')


class PageFetcher:
    """
    Thin async wrapper around ``httpx.AsyncClient``.

    A client may be injected (tests pass one built on ``httpx.MockTransport``);
    otherwise one is created lazily and owned by the fetcher.
    """

    def __init__(
        self,
        settings: Optional[FetchSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or FetchSettings()
        self._client = client
        self._owns_client = client is None

    @property
    def headers(self) -> dict:
        return {"User-Agent": self.settings.user_agent}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs = {
                "headers": self.headers,
                "follow_redirects": self.settings.follow_redirects,
            }
            if self.settings.timeout is not None:
                kwargs["timeout"] = self.settings.timeout
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def fetch(self, url: str) -> str:
        """
        Return the HTML body of *url*.

        Raises
        ------
        CaptureError
            On a non‑2xx response (``status_code`` set) or a transport error
            (``reason`` set).
        """
        client = self._get_client()
        FETCH_REQUESTS.inc()
        start = time.time()
        try:
            response = await client.get(
                url,
                headers=self.headers,
                follow_redirects=self.settings.follow_redirects,
            )
        except httpx.HTTPError as exc:
            FETCH_ERRORS.inc()
            logger.warning(f"Transport error fetching {url}: {exc!r}")
            raise CaptureError(url, reason=str(exc) or exc.__class__.__name__) from exc
        finally:
            FETCH_DURATION.observe(time.time() - start)

        if not response.is_success:
            FETCH_ERRORS.inc()
            logger.warning(f"HTTP {response.status_code} fetching {url}")
            raise CaptureError(
                url,
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        logger.debug(f"Fetched {url} ({len(response.content)} bytes) in {time.time() - start:.2f}s")
        return response.text

    async def close(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
