"""Cache layer scan: page/object cache plugins, drop-ins, CDN and server caches.

Reports every caching layer it can see so overlapping HTML caches can be
spotted. CDN and server caches are read from the audited page's response
headers; plugins and drop-ins come from the site inventory.
"""

import structlog

from siteaudit.checks.models import CacheLayersReport
from siteaudit.crawler.fetcher import FetchResult
from siteaudit.exceptions import InventoryError
from siteaudit.inventory.base import (
    OBJECT_CACHE_DROPIN,
    OBJECT_CACHE_PLUGINS,
    PAGE_CACHE_PLUGINS,
    SiteInventory,
)

logger = structlog.get_logger(__name__)

# Status values NGINX fastcgi/proxy caches report
NGINX_CACHE_STATUSES = ("hit", "miss", "bypass", "expired", "updating", "revalidated")
SRCACHE_STORE_STATUSES = ("store", "bypass")
SRCACHE_FETCH_STATUSES = ("hit", "miss", "bypass")

MULTIPLE_PAGE_CACHES_RISK = (
    "Multiple page cache plugins are active; this often causes stale pages "
    "and hard-to-debug cache hits."
)
STACKED_HTML_CACHE_RISK = (
    "Page cache plugin + CDN/server cache detected. Use only one layer to cache "
    "HTML; others should be pass-through or disabled."
)
MULTIPLE_OBJECT_CACHES_RISK = (
    "Multiple object cache systems detected (drop-in + plugin). Use only one "
    "Redis/Memcached provider."
)

PURGE_ORDER_TIP = "After changes, purge all layers: plugin cache, then CDN cache, then server cache."
CLOUDFLARE_TIP = (
    "For Cloudflare users, use Development Mode while editing, then disable it "
    "and purge when done."
)


def _header(headers: dict[str, str], name: str) -> str:
    return (headers.get(name) or "").strip()


def detect_cdn(headers: dict[str, str]) -> list[str]:
    """CDNs identified from response headers (lower-cased names)."""
    cdn = []
    if "cf-cache-status" in headers or "cloudflare" in _header(headers, "server").lower():
        cdn.append("Cloudflare")
    if "fastly" in _header(headers, "x-served-by").lower():
        cdn.append("Fastly")
    if "x-akamai-staging" in headers or "x-akamai-transformed" in headers:
        cdn.append("Akamai")
    if "cloudfront" in _header(headers, "x-cache").lower():
        cdn.append("Amazon CloudFront")
    return cdn


def detect_server_cache(headers: dict[str, str]) -> list[str]:
    """Host-level caches (Varnish, NGINX, OpenResty, LiteSpeed) from response headers."""
    x_cache = _header(headers, "x-cache").lower()
    found = []

    if "x-varnish" in headers or (_header(headers, "age") and "hit" in x_cache):
        found.append("Varnish")

    if _header(headers, "x-fastcgi-cache").lower() in NGINX_CACHE_STATUSES:
        found.append("NGINX FastCGI cache")
    if any(
        _header(headers, name).lower() in NGINX_CACHE_STATUSES
        for name in ("x-cache-status", "x-nginx-cache", "x-nginx-cache-status")
    ):
        found.append("NGINX FastCGI cache")
    if _header(headers, "x-proxy-cache").lower() in NGINX_CACHE_STATUSES:
        found.append("NGINX/Proxy cache")
    if "nginx" in x_cache:
        found.append("NGINX cache")
    if _header(headers, "x-accel-expires"):
        found.append("NGINX (X-Accel-Expires)")

    if (
        _header(headers, "x-srcache-store-status").lower() in SRCACHE_STORE_STATUSES
        or _header(headers, "x-srcache-fetch-status").lower() in SRCACHE_FETCH_STATUSES
    ):
        found.append("OpenResty srcache (NGINX)")

    if "x-litespeed-cache" in headers or "litespeed" in _header(headers, "server").lower():
        found.append("LiteSpeed Server Cache")

    # de-duplicate, keep first-seen order
    return list(dict.fromkeys(found))


def build_recommendations(report: CacheLayersReport) -> list[str]:
    """Next steps for the layers found; the purge tips are always included."""
    recommendations = []
    if len(report.page_cache_plugins) > 1:
        recommendations.append(
            "Deactivate extra page cache plugins. Keep only one page cache plugin active."
        )
    if report.cdn and report.page_cache_plugins:
        recommendations.append(
            f"If using a CDN ({', '.join(report.cdn)}), set HTML caching at either the CDN "
            "or the plugin, not both. Prefer the CDN for static assets only."
        )
    if report.server_cache:
        recommendations.append(
            f"Host/server cache detected ({', '.join(report.server_cache)}). Ensure it does "
            "not also cache HTML if a plugin/CDN already does."
        )
    if OBJECT_CACHE_DROPIN in report.dropins and len(report.object_cache_plugins) > 1:
        recommendations.append(
            "Use only one object cache (e.g., Redis or Memcached) to avoid conflicts."
        )
    recommendations.append(PURGE_ORDER_TIP)
    recommendations.append(CLOUDFLARE_TIP)
    return recommendations


def scan_cache_layers(page: FetchResult, inventory: SiteInventory | None) -> CacheLayersReport:
    """
    Scan all cache layers for a page.

    Args:
        page: The audited page; only its response headers are read
        inventory: Source of active plugins and drop-ins, if configured

    Returns:
        CacheLayersReport; ``error`` notes an inventory failure or a page
        that returned no headers
    """
    report = CacheLayersReport()
    errors = []

    if inventory is not None:
        try:
            active = inventory.active_plugins()
            report.dropins = inventory.dropins()
        except InventoryError as e:
            errors.append(e.message)
            logger.warning("cache_layers_inventory_failed", error=e.message)
        else:
            report.page_cache_plugins = {
                plugin: label for plugin, label in PAGE_CACHE_PLUGINS.items() if plugin in active
            }
            report.object_cache_plugins = {
                plugin: label for plugin, label in OBJECT_CACHE_PLUGINS.items() if plugin in active
            }

    if page.headers:
        report.cdn = detect_cdn(page.headers)
        report.server_cache = detect_server_cache(page.headers)
    elif page.error:
        errors.append(page.error)

    if len(report.page_cache_plugins) > 1:
        report.risks.append(MULTIPLE_PAGE_CACHES_RISK)
    if report.page_cache_plugins and (report.cdn or report.server_cache):
        report.risks.append(STACKED_HTML_CACHE_RISK)
    if OBJECT_CACHE_DROPIN in report.dropins and len(report.object_cache_plugins) > 1:
        report.risks.append(MULTIPLE_OBJECT_CACHES_RISK)

    report.recommendations = build_recommendations(report)
    report.error = "; ".join(errors) or None

    logger.debug(
        "cache_layers_scanned",
        url=page.url,
        cdn=report.cdn,
        server_cache=report.server_cache,
        risks=len(report.risks),
    )
    return report
