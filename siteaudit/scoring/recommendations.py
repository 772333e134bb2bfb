"""Recommendation registry and prioritization."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from siteaudit.checks.models import CheckResult

SEVERITY_RANK: Mapping[str, int] = MappingProxyType({"high": 0, "medium": 1, "low": 2})
UNKNOWN_SEVERITY_RANK = 3


@dataclass(frozen=True)
class Recommendation:
    """Fix suggested when a check scores below 100."""

    slug: str
    title: str
    message: str
    docs_url: str
    severity: str

    def to_dict(self) -> dict[str, str]:
        return {
            "slug": self.slug,
            "title": self.title,
            "message": self.message,
            "docs_url": self.docs_url,
            "severity": self.severity,
        }


def _entry(slug: str, title: str, message: str, docs_url: str, severity: str) -> tuple[str, Recommendation]:
    return slug, Recommendation(slug, title, message, docs_url, severity)


RECOMMENDATIONS: Mapping[str, Recommendation] = MappingProxyType(
    dict(
        [
            _entry(
                "cache_present",
                "Enable full-page caching",
                "No page cache detected. Enable server/page caching "
                "(e.g., W3 Total Cache, WP Rocket, LiteSpeed, or host cache).",
                "https://developer.wordpress.org/caching/",
                "high",
            ),
            _entry(
                "compression",
                "Turn on gzip/Brotli compression",
                "Responses are not compressed. Enable gzip/Brotli at the server or via plugin/CDN.",
                "https://wordpress.org/support/article/optimization/",
                "high",
            ),
            _entry(
                "client_cache",
                "Add long-lived browser caching for assets",
                "CSS/JS lack Cache-Control max-age. Set far-future headers on static assets.",
                "https://web.dev/http-cache/",
                "medium",
            ),
            _entry(
                "assets_counts",
                "Reduce CSS/JS requests",
                "Too many individual files. Concatenate where possible and remove unused enqueues.",
                "https://web.dev/requests/",
                "medium",
            ),
            _entry(
                "render_blocking",
                "Eliminate render-blocking resources",
                "Add defer/async to non-critical scripts and inline critical CSS.",
                "https://web.dev/render-blocking-resources/",
                "high",
            ),
            _entry(
                "images_dims_and_size",
                "Serve next-gen / sized images",
                "Define width/height and serve WebP/AVIF where supported.",
                "https://web.dev/uses-webp-images/",
                "medium",
            ),
            _entry(
                "ttfb",
                "Reduce server TTFB",
                "Add page cache, optimize PHP/DB, and reduce slow queries.",
                "https://web.dev/ttfb/",
                "high",
            ),
            _entry(
                "h2_h3",
                "Enable HTTP/2 or HTTP/3",
                "Upgrade server/CDN to support multiplexing and HPACK/QPACK.",
                "https://web.dev/http2/",
                "low",
            ),
            _entry(
                "autoload_size",
                "Shrink autoloaded options",
                "Large autoload bloat slows every page load. "
                "Prune options and avoid marking big data autoload=yes.",
                "https://wordpress.org/documentation/article/optimization/",
                "medium",
            ),
            _entry(
                "postmeta_bloat",
                "Normalize postmeta",
                "Heavy meta per post. Clean up unused keys and index frequently-queried ones.",
                "https://make.wordpress.org/core/",
                "low",
            ),
            _entry(
                "transients",
                "Purge expired transients",
                "Expired transients found. Schedule cleanup.",
                "https://developer.wordpress.org/apis/option/trns/",
                "low",
            ),
            _entry(
                "updates_core",
                "Update WordPress core",
                "Keep core up to date for security and performance fixes.",
                "https://wordpress.org/download/releases/",
                "high",
            ),
            _entry(
                "updates_plugins",
                "Update plugins",
                "Outdated plugins increase risk and overhead. Remove unused ones.",
                "https://wordpress.org/plugins/",
                "medium",
            ),
            _entry(
                "updates_themes",
                "Update themes",
                "Keep your active/child themes updated.",
                "https://wordpress.org/themes/",
                "low",
            ),
        ]
    )
)


def severity_rank(severity: str) -> int:
    return SEVERITY_RANK.get(severity, UNKNOWN_SEVERITY_RANK)


def top_recommendation(
    check_results: Mapping[str, CheckResult],
    registry: Mapping[str, Recommendation] = RECOMMENDATIONS,
) -> Recommendation | None:
    """
    Pick the single most urgent recommendation.

    Candidates are checks scoring below 100 that have a registry entry.
    Highest severity wins; among equal severities the lower score wins.

    Args:
        check_results: Check slug -> result
        registry: Check slug -> recommendation

    Returns:
        The top Recommendation, or None when nothing needs fixing
    """
    candidates = [
        (severity_rank(registry[slug].severity), result.score, registry[slug])
        for slug, result in check_results.items()
        if result.score < 100 and slug in registry
    ]
    if not candidates:
        return None

    candidates.sort(key=lambda c: (c[0], c[1]))
    return candidates[0][2]
