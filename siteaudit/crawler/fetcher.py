"""HTTP fetcher for audit checks.

One GET for the page under audit, HEAD probes for assets, and a timed GET
for TTFB. No retries: a failed request is reported in the result and the
calling check scores it as a fallback.
"""

import time
from dataclasses import dataclass, field

import httpx
import structlog

from siteaudit.config import Settings, get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Result of fetching the page under audit."""

    url: str
    final_url: str  # After redirects
    status_code: int
    html: str
    headers: dict[str, str] = field(default_factory=dict)  # lower-cased names
    error: str | None = None
    fetch_time_ms: int = 0

    @property
    def ok(self) -> bool:
        """2xx and 3xx final responses count as success."""
        return self.error is None and 200 <= self.status_code < 400

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


@dataclass(frozen=True)
class HeadResult:
    """Result of a HEAD probe."""

    url: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    http_version: str | None = None
    error: str | None = None

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


@dataclass(frozen=True)
class TimedResult:
    """Wall-clock duration of a full GET request."""

    url: str
    elapsed_ms: int
    status_code: int = 0
    error: str | None = None


def _lower_headers(headers: httpx.Headers) -> dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def _describe_error(e: Exception, timeout: float) -> str:
    if isinstance(e, httpx.TimeoutException):
        return f"Request timed out after {timeout}s"
    if isinstance(e, httpx.ConnectError):
        return f"Connection failed: {e}"
    return str(e) or type(e).__name__


class Fetcher:
    """HTTP collaborator used by the checks."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=self.settings.max_redirects,
            transport=self._transport,
            headers={"User-Agent": self.settings.user_agent},
        )

    async def fetch(self, url: str) -> FetchResult:
        """
        GET a page and keep its HTML and headers.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult; ``error`` is set on network failure
        """
        timeout = self.settings.fetch_timeout
        start = time.perf_counter()

        try:
            async with self._client(timeout) as client:
                response = await client.get(
                    url,
                    headers={
                        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                        "Accept-Encoding": "gzip, deflate",
                    },
                )
        except httpx.HTTPError as e:
            error = _describe_error(e, timeout)
            logger.warning("fetch_failed", url=url, error=error)
            return FetchResult(
                url=url,
                final_url=url,
                status_code=0,
                html="",
                error=error,
                fetch_time_ms=int((time.perf_counter() - start) * 1000),
            )

        result = FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            html=response.text,
            headers=_lower_headers(response.headers),
            fetch_time_ms=int((time.perf_counter() - start) * 1000),
        )
        logger.debug(
            "page_fetched",
            url=url,
            status_code=result.status_code,
            fetch_time_ms=result.fetch_time_ms,
        )
        return result

    async def head(self, url: str) -> HeadResult:
        """HEAD an asset or page to inspect its response headers."""
        timeout = self.settings.head_timeout

        try:
            async with self._client(timeout) as client:
                response = await client.head(url)
        except httpx.HTTPError as e:
            error = _describe_error(e, timeout)
            logger.warning("head_failed", url=url, error=error)
            return HeadResult(url=url, status_code=0, error=error)

        return HeadResult(
            url=url,
            status_code=response.status_code,
            headers=_lower_headers(response.headers),
            http_version=response.http_version,
        )

    async def timed_get(self, url: str) -> TimedResult:
        """Time a full GET, body included."""
        timeout = self.settings.ttfb_timeout
        start = time.perf_counter()

        try:
            async with self._client(timeout) as client:
                response = await client.get(url)
                await response.aread()
        except httpx.HTTPError as e:
            elapsed_ms = round((time.perf_counter() - start) * 1000)
            error = _describe_error(e, timeout)
            logger.warning("timed_get_failed", url=url, error=error)
            return TimedResult(url=url, elapsed_ms=elapsed_ms, error=error)

        elapsed_ms = round((time.perf_counter() - start) * 1000)
        logger.info("ttfb_measured", url=url, ttfb_ms=elapsed_ms)
        return TimedResult(url=url, elapsed_ms=elapsed_ms, status_code=response.status_code)
