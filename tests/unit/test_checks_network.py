"""Tests for the fetcher and the checks that make their own requests."""

from unittest.mock import patch

import httpx
import pytest

from siteaudit.checks.caching import check_client_cache, score_cache_control
from siteaudit.checks.server import PROTOCOL_NEUTRAL_SCORE, check_h2_h3, check_ttfb, score_ttfb
from siteaudit.crawler.fetcher import TimedResult
from tests.fixtures import failed_page, html_document, make_page

STYLESHEET_PAGE = html_document('<link rel="stylesheet" href="/wp-content/themes/x/style.css">')


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused", request=request)


class TestFetcher:
    """Tests for the HTTP fetcher."""

    @pytest.mark.asyncio
    async def test_fetch_keeps_html_and_lowercased_headers(self, make_fetcher) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                html="<html><body>hi</body></html>",
                headers={"Content-Encoding": "identity", "X-Cache": "HIT"},
            )

        result = await make_fetcher(handler).fetch("https://example.com/")

        assert result.ok
        assert result.status_code == 200
        assert "hi" in result.html
        assert result.headers["x-cache"] == "HIT"
        assert result.header("X-Cache") == "HIT"

    @pytest.mark.asyncio
    async def test_fetch_follows_redirects(self, make_fetcher) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://example.com/new"})
            return httpx.Response(200, html="<html></html>")

        result = await make_fetcher(handler).fetch("https://example.com/old")

        assert result.final_url == "https://example.com/new"
        assert result.url == "https://example.com/old"

    @pytest.mark.asyncio
    async def test_fetch_sends_user_agent(self, make_fetcher, settings) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200, html="")

        await make_fetcher(handler).fetch("https://example.com/")

        assert seen["ua"] == settings.user_agent

    @pytest.mark.asyncio
    async def test_fetch_connection_error(self, make_fetcher) -> None:
        result = await make_fetcher(_refuse).fetch("https://example.com/")

        assert not result.ok
        assert result.status_code == 0
        assert result.error == "Connection failed: refused"

    @pytest.mark.asyncio
    async def test_error_status_is_not_ok(self, make_fetcher) -> None:
        result = await make_fetcher(lambda r: httpx.Response(503, text="down")).fetch(
            "https://example.com/"
        )

        assert result.error is None
        assert not result.ok

    @pytest.mark.asyncio
    async def test_head_reports_http_version(self, make_fetcher) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "HEAD"
            return httpx.Response(200, headers={"Cache-Control": "max-age=60"})

        result = await make_fetcher(handler).head("https://example.com/a.css")

        assert result.header("cache-control") == "max-age=60"
        assert result.http_version == "HTTP/1.1"

    @pytest.mark.asyncio
    async def test_timed_get_error(self, make_fetcher) -> None:
        result = await make_fetcher(_refuse).timed_get("https://example.com/")

        assert result.error == "Connection failed: refused"
        assert result.elapsed_ms >= 0


class TestScoreCacheControl:
    """Tests for Cache-Control scoring."""

    def test_one_year_or_more(self) -> None:
        assert score_cache_control("public, max-age=31536000, immutable") == 100
        assert score_cache_control("max-age=63072000") == 100

    def test_one_day_or_more(self) -> None:
        assert score_cache_control("max-age=86400") == 80

    def test_short_max_age(self) -> None:
        assert score_cache_control("max-age=3600") == 50
        assert score_cache_control("max-age=0") == 50

    def test_no_max_age(self) -> None:
        assert score_cache_control("no-cache") == 60

    def test_missing(self) -> None:
        assert score_cache_control(None) == 50
        assert score_cache_control("") == 50


class TestClientCache:
    """Tests for the browser-cache probe."""

    @pytest.mark.asyncio
    async def test_probes_first_stylesheet(self, make_fetcher) -> None:
        probed = []

        def handler(request: httpx.Request) -> httpx.Response:
            probed.append(str(request.url))
            return httpx.Response(200, headers={"Cache-Control": "public, max-age=31536000"})

        result = await check_client_cache(make_page(STYLESHEET_PAGE), make_fetcher(handler))

        assert probed == ["https://example.com/wp-content/themes/x/style.css"]
        assert result.score == 100
        assert result.meta.cache_control == "public, max-age=31536000"
        assert result.meta.asset_url == probed[0]

    @pytest.mark.asyncio
    async def test_fallback_asset_when_page_has_no_stylesheet(self, make_fetcher) -> None:
        probed = []

        def handler(request: httpx.Request) -> httpx.Response:
            probed.append(str(request.url))
            return httpx.Response(200, headers={"Cache-Control": "max-age=86400"})

        result = await check_client_cache(
            make_page(html_document()),
            make_fetcher(handler),
            fallback_asset="https://cdn.example.com/style.css",
        )

        assert probed == ["https://cdn.example.com/style.css"]
        assert result.score == 80

    @pytest.mark.asyncio
    async def test_failed_page_uses_fallback(self, make_fetcher) -> None:
        handler = lambda r: httpx.Response(200, headers={"Cache-Control": "no-store"})  # noqa: E731

        result = await check_client_cache(
            failed_page(), make_fetcher(handler), fallback_asset="https://example.com/s.css"
        )

        assert result.score == 60

    @pytest.mark.asyncio
    async def test_nothing_to_probe(self, make_fetcher) -> None:
        result = await check_client_cache(make_page(html_document()), make_fetcher(_refuse))

        assert result.score == 50
        assert result.meta.error == "No stylesheet found to probe"

    @pytest.mark.asyncio
    async def test_probe_failure(self, make_fetcher) -> None:
        result = await check_client_cache(make_page(STYLESHEET_PAGE), make_fetcher(_refuse))

        assert result.score == 50
        assert result.meta.error == "Connection failed: refused"
        assert result.meta.hint() == "Cache-Control: n/a"

    @pytest.mark.asyncio
    async def test_missing_header(self, make_fetcher) -> None:
        result = await check_client_cache(
            make_page(STYLESHEET_PAGE), make_fetcher(lambda r: httpx.Response(200))
        )

        assert result.score == 50
        assert result.meta.cache_control == "n/a"
        assert result.meta.error is None


class TestTTFB:
    """Tests for TTFB banding."""

    @pytest.mark.parametrize(
        "ttfb_ms,expected",
        [
            (50, 100),
            (200, 100),
            (201, 90),
            (300, 90),
            (301, 80),
            (401, 60),
            (601, 40),
            (800, 40),
            (801, 20),
            (5000, 20),
        ],
    )
    def test_bands(self, ttfb_ms: int, expected: int) -> None:
        assert score_ttfb(ttfb_ms) == expected

    @pytest.mark.asyncio
    async def test_check_uses_timed_get(self, make_fetcher) -> None:
        fetcher = make_fetcher(_refuse)
        timed = TimedResult(url="https://example.com/", elapsed_ms=350, status_code=200)

        with patch.object(fetcher, "timed_get", return_value=timed):
            result = await check_ttfb("https://example.com/", fetcher)

        assert result.score == 80
        assert result.meta.ttfb_ms == 350
        assert result.meta.hint() == "Measured TTFB: 350ms"

    @pytest.mark.asyncio
    async def test_request_failure_scores_unknown(self, make_fetcher) -> None:
        result = await check_ttfb("https://example.com/", make_fetcher(_refuse))

        assert result.score == 50
        assert result.meta.error == "Connection failed: refused"


class TestProtocol:
    """Tests for the HTTP/2 / HTTP/3 check."""

    @pytest.mark.asyncio
    async def test_reports_server_timing_but_scores_neutral(self, make_fetcher) -> None:
        handler = lambda r: httpx.Response(200, headers={"Server-Timing": "cdn-cache; desc=HIT"})  # noqa: E731

        result = await check_h2_h3("https://example.com/", make_fetcher(handler))

        # Weak signal: fixed neutral score, not a calibrated threshold
        assert result.score == PROTOCOL_NEUTRAL_SCORE
        assert result.meta.alpn == "cdn-cache; desc=HIT"

    @pytest.mark.asyncio
    async def test_unknown_protocol(self, make_fetcher) -> None:
        result = await check_h2_h3("https://example.com/", make_fetcher(lambda r: httpx.Response(200)))

        # Weak signal: fixed neutral score, not a calibrated threshold
        assert result.score == PROTOCOL_NEUTRAL_SCORE
        assert result.meta.alpn == "h2/h3-unknown"
        assert result.meta.hint() == "ALPN: h2/h3-unknown"

    @pytest.mark.asyncio
    async def test_failed_probe_still_neutral(self, make_fetcher) -> None:
        result = await check_h2_h3("https://example.com/", make_fetcher(_refuse))

        # Weak signal: fixed neutral score, not a calibrated threshold
        assert result.score == PROTOCOL_NEUTRAL_SCORE
        assert result.meta.alpn == "h2/h3-unknown"
        assert result.meta.error == "Connection failed: refused"
