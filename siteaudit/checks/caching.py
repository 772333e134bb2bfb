"""Caching checks: page cache presence, compression, browser caching of assets."""

import re
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup

from siteaudit.checks.cache_layers import detect_cdn
from siteaudit.checks.models import (
    CachePresenceMeta,
    CheckResult,
    ClientCacheMeta,
    CompressionMeta,
)
from siteaudit.crawler.fetcher import Fetcher, FetchResult
from siteaudit.exceptions import InventoryError
from siteaudit.inventory.base import SiteInventory

logger = structlog.get_logger(__name__)

# First non-empty one of these is inspected for a cache hit
CACHE_STATUS_HEADERS = ("x-cache", "x-proxy-cache", "x-cache-status", "cf-cache-status")
CACHE_HIT_RE = re.compile(r"hit|cached", re.IGNORECASE)

MAX_AGE_RE = re.compile(r"max-age=(\d+)", re.IGNORECASE)
ONE_YEAR_SECONDS = 31536000
ONE_DAY_SECONDS = 86400

# Score when the asset probe yields nothing to judge
CLIENT_CACHE_UNKNOWN_SCORE = 50


def _cache_header_hit(page: FetchResult) -> bool:
    status = ""
    for name in CACHE_STATUS_HEADERS:
        status = page.header(name) or ""
        if status:
            break
    if status and CACHE_HIT_RE.search(status):
        return True

    try:
        return int((page.header("age") or "0").strip()) > 0
    except ValueError:
        return False


def check_cache_present(page: FetchResult, inventory: SiteInventory | None) -> CheckResult:
    """
    Detect a page cache from response headers or site configuration.

    Any one signal is enough: a cache-status header reporting a hit, an
    ``Age`` above zero, an active caching plugin, or the WP_CACHE constant.
    Binary score: 100 when cached, else 0.
    """
    cached = _cache_header_hit(page) if page.headers else False
    plugin = ""
    error = None

    if inventory is not None:
        try:
            plugin = inventory.active_cache_plugin()
            if plugin or inventory.cache_constant_defined():
                cached = True
        except InventoryError as e:
            error = e.message
            logger.warning("cache_plugin_lookup_failed", error=error)

    return CheckResult(
        score=100 if cached else 0,
        meta=CachePresenceMeta(
            cached=cached,
            plugin=plugin,
            cdn=detect_cdn(page.headers),
            error=error,
        ),
    )


def check_compression(page: FetchResult) -> CheckResult:
    """Score 100 when the page is served gzip or Brotli encoded, else 0."""
    encoding = page.header("content-encoding") or ""
    lowered = encoding.lower()
    compressed = "gzip" in lowered or "br" in lowered

    return CheckResult(
        score=100 if compressed else 0,
        meta=CompressionMeta(encoding=encoding or "n/a"),
    )


def _first_stylesheet(page: FetchResult) -> str | None:
    soup = BeautifulSoup(page.html, "html.parser")
    for link in soup.find_all("link", href=True):
        rel = [r.lower() for r in link.get("rel") or []]
        if "stylesheet" in rel:
            return urljoin(page.final_url, link["href"])
    return None


def score_cache_control(cache_control: str | None) -> int:
    """
    Score a Cache-Control value for a static asset.

    One year or more scores 100, one day or more 80, a shorter max-age 50.
    A header without max-age scores 60 and a missing header 50.
    """
    if not cache_control:
        return CLIENT_CACHE_UNKNOWN_SCORE
    match = MAX_AGE_RE.search(cache_control)
    if not match:
        return 60
    max_age = int(match.group(1))
    if max_age >= ONE_YEAR_SECONDS:
        return 100
    if max_age >= ONE_DAY_SECONDS:
        return 80
    return 50


async def check_client_cache(
    page: FetchResult,
    fetcher: Fetcher,
    fallback_asset: str | None = None,
) -> CheckResult:
    """
    Probe the primary stylesheet with HEAD and score its Cache-Control.

    The asset is the first stylesheet linked from the page, else
    ``fallback_asset``.
    """
    asset = _first_stylesheet(page) if page.ok else None
    asset = asset or fallback_asset

    if not asset:
        return CheckResult(
            score=CLIENT_CACHE_UNKNOWN_SCORE,
            meta=ClientCacheMeta(error="No stylesheet found to probe"),
        )

    head = await fetcher.head(asset)
    if head.error:
        return CheckResult(
            score=CLIENT_CACHE_UNKNOWN_SCORE,
            meta=ClientCacheMeta(asset_url=asset, error=head.error),
        )

    cache_control = head.header("cache-control")
    return CheckResult(
        score=score_cache_control(cache_control),
        meta=ClientCacheMeta(cache_control=cache_control or "n/a", asset_url=asset),
    )
