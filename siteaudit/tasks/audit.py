"""Audit runner.

Runs the fourteen internal checks, optionally PageSpeed Insights, and
composes the overall score. Checks run one after another; a failure in
one check never stops the others.
"""

import inspect
import time
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime

import structlog

from siteaudit.cache import AuditCache
from siteaudit.checks.assets import check_assets_counts, check_render_blocking
from siteaudit.checks.cache_layers import scan_cache_layers
from siteaudit.checks.caching import check_cache_present, check_client_cache, check_compression
from siteaudit.checks.database import check_autoload_size, check_postmeta_bloat, check_transients
from siteaudit.checks.images import check_images_dims_and_size
from siteaudit.checks.models import META_TYPES, CheckResult
from siteaudit.checks.seo_basics import SeoBasicsResult, analyze
from siteaudit.checks.server import PROTOCOL_NEUTRAL_SCORE, check_h2_h3, check_ttfb
from siteaudit.checks.updates import check_updates_core, check_updates_plugins, check_updates_themes
from siteaudit.config import Settings, get_settings
from siteaudit.crawler.fetcher import Fetcher
from siteaudit.inventory.base import SiteInventory, build_inventory
from siteaudit.models import (
    VITALS_INTERNAL,
    VITALS_NONE,
    AuditPayload,
    InternalAuditResult,
)
from siteaudit.pagespeed import PsiClient, build_psi_client, run_strategies
from siteaudit.scoring.estimator import estimate_categories, estimate_web_vitals
from siteaudit.scoring.normalize import grade
from siteaudit.scoring.overall import compose_overall
from siteaudit.scoring.recommendations import RECOMMENDATIONS, Recommendation, top_recommendation
from siteaudit.scoring.sections import SECTION_CHECKS, build_internal_result

logger = structlog.get_logger(__name__)

NO_PSI_WARNING = "Lab metrics (FCP/LCP/TBT/CLS/SI) require a PageSpeed API key or proxy."
SEO_FETCH_FAILED = "Could not retrieve HTML for SEO checks."

# Score used when a check raises unexpectedly. Checks where only a
# positive signal earns points fall back to 0.
CHECK_FALLBACK_SCORES = {
    "cache_present": 0,
    "compression": 0,
    "h2_h3": PROTOCOL_NEUTRAL_SCORE,
}
DEFAULT_FALLBACK_SCORE = 50


def fallback_result(slug: str, error: str) -> CheckResult:
    """The documented fallback for a check that could not run."""
    meta_type = META_TYPES[slug]
    return CheckResult(
        score=CHECK_FALLBACK_SCORES.get(slug, DEFAULT_FALLBACK_SCORE),
        meta=meta_type(error=error),
    )


async def _run_check(slug: str, check: Callable[[], CheckResult | Awaitable[CheckResult]]) -> CheckResult:
    try:
        result = check()
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.warning("check_failed", check=slug, error=str(e))
        return fallback_result(slug, str(e) or type(e).__name__)

    logger.debug("check_completed", check=slug, score=result.score)
    return result


async def run_internal_audit(
    url: str,
    fetcher: Fetcher | None = None,
    inventory: SiteInventory | None = None,
    settings: Settings | None = None,
    include_seo: bool = False,
    now: int | None = None,
) -> InternalAuditResult:
    """
    Run all internal checks against a URL.

    The page is fetched once and that response is shared, read-only, by
    the HTML and header checks.

    Args:
        url: Page to audit
        fetcher: HTTP collaborator
        inventory: Site inventory for the database and core checks
        settings: Settings (fallback stylesheet URL)
        include_seo: Also run the SEO basics scan as the ``seo_basics`` section
        now: Unix time used for transient expiry

    Returns:
        InternalAuditResult with fourteen checks, six sections and the
        cache layers report (unscored)
    """
    settings = settings or get_settings()
    fetcher = fetcher or Fetcher(settings)
    now = int(time.time()) if now is None else now

    logger.info("internal_audit_starting", url=url, inventory=type(inventory).__name__)
    page = await fetcher.fetch(url)

    checks: dict[str, CheckResult] = {}
    checks["cache_present"] = await _run_check(
        "cache_present", lambda: check_cache_present(page, inventory)
    )
    checks["compression"] = await _run_check("compression", lambda: check_compression(page))
    checks["client_cache"] = await _run_check(
        "client_cache", lambda: check_client_cache(page, fetcher, settings.stylesheet_url)
    )
    checks["assets_counts"] = await _run_check("assets_counts", lambda: check_assets_counts(page))
    checks["render_blocking"] = await _run_check(
        "render_blocking", lambda: check_render_blocking(page)
    )
    checks["images_dims_and_size"] = await _run_check(
        "images_dims_and_size", lambda: check_images_dims_and_size(page)
    )
    checks["ttfb"] = await _run_check("ttfb", lambda: check_ttfb(url, fetcher))
    checks["h2_h3"] = await _run_check("h2_h3", lambda: check_h2_h3(url, fetcher))
    checks["autoload_size"] = await _run_check("autoload_size", lambda: check_autoload_size(inventory))
    checks["postmeta_bloat"] = await _run_check(
        "postmeta_bloat", lambda: check_postmeta_bloat(inventory)
    )
    checks["transients"] = await _run_check("transients", lambda: check_transients(inventory, now))
    checks["updates_core"] = await _run_check("updates_core", lambda: check_updates_core(inventory))
    checks["updates_plugins"] = await _run_check(
        "updates_plugins", lambda: check_updates_plugins(inventory)
    )
    checks["updates_themes"] = await _run_check(
        "updates_themes", lambda: check_updates_themes(inventory)
    )

    seo_score = None
    if include_seo:
        seo_score = (analyze(page.html, url) if page.ok else _seo_unavailable()).score

    result = build_internal_result(checks, seo_score=seo_score)
    try:
        result.cache_layers = scan_cache_layers(page, inventory)
    except Exception as e:
        logger.warning("cache_layers_scan_failed", url=url, error=str(e))

    logger.info(
        "internal_audit_completed",
        url=url,
        overall=result.overall,
        sections={key: s.score for key, s in result.sections.items()},
    )
    return result


def _seo_unavailable() -> SeoBasicsResult:
    result = analyze("")
    result.messages = [SEO_FETCH_FAILED]
    return result


async def run_seo_basics(url: str, fetcher: Fetcher | None = None) -> SeoBasicsResult:
    """Fetch a page and run only the SEO basics scan."""
    fetcher = fetcher or Fetcher()
    page = await fetcher.fetch(url)
    if not page.ok:
        logger.warning("seo_basics_fetch_failed", url=url, error=page.error)
        return _seo_unavailable()
    return analyze(page.html, url)


def audit_variant(strategy: str, include_seo: bool) -> str:
    """Cache variant for the run options that change the payload."""
    return f"{strategy}:{'seo' if include_seo else 'core'}"


async def run_audit(
    url: str | None = None,
    force_refresh: bool = False,
    *,
    settings: Settings | None = None,
    fetcher: Fetcher | None = None,
    inventory: SiteInventory | None = None,
    psi_client: PsiClient | None = None,
    cache: AuditCache | None = None,
    strategy: str | None = None,
    include_seo: bool | None = None,
) -> AuditPayload:
    """
    Run a full audit and persist it as the last audit.

    A cached payload for the URL, built with the same strategy and SEO
    option, is returned when present unless ``force_refresh``. Without
    PSI credentials, or when PSI fails, category scores and Web Vitals are
    estimated from the internal checks; estimated Web Vitals are shown but
    not counted in the overall score.

    Args:
        url: Page to audit (defaults to the configured test URL)
        force_refresh: Ignore and replace any cached result
        settings: Settings override
        fetcher: HTTP collaborator override
        inventory: Inventory override (defaults to the configured backend)
        psi_client: PSI client override (defaults to the configured one)
        cache: Result cache override
        strategy: 'mobile', 'desktop' or 'both' (defaults to settings)
        include_seo: Run the SEO basics scan (defaults to settings)

    Returns:
        The AuditPayload
    """
    settings = settings or get_settings()
    url = url or settings.default_test_url
    cache = cache or AuditCache(ttl_seconds=settings.result_cache_ttl_seconds)
    strategy = strategy or settings.psi_strategy
    include_seo = settings.seo_basics_enabled if include_seo is None else include_seo
    variant = audit_variant(strategy, include_seo)

    if force_refresh:
        await cache.invalidate(url, variant)
    else:
        cached = await cache.get(url, variant)
        if cached is not None:
            return cached

    inventory = inventory if inventory is not None else build_inventory(settings)
    if psi_client is None and settings.psi_available:
        psi_client = build_psi_client(settings)

    internal = await run_internal_audit(
        url,
        fetcher=fetcher or Fetcher(settings),
        inventory=inventory,
        settings=settings,
        include_seo=include_seo,
    )

    psi = None
    if psi_client is not None:
        psi = await run_strategies(psi_client, url, strategy)

    warnings: list[str] = []
    if psi is not None and psi.ok:
        categories = psi.scores or estimate_categories(internal)
        web_vitals = psi.web_vitals
        vitals_source = psi.vitals_source
        lab_metrics = psi.lab_metrics
        lab_overall = psi.lab_overall
        final_url = psi.final_url or url
        warnings.extend(psi.warnings)
    else:
        categories = estimate_categories(internal)
        estimated = estimate_web_vitals(internal)
        web_vitals = estimated.overall
        vitals_source = VITALS_INTERNAL if web_vitals is not None else VITALS_NONE
        lab_metrics = estimated.metrics
        lab_overall = estimated.overall
        final_url = url
        if psi is None:
            warnings.append(NO_PSI_WARNING)
        else:
            logger.warning("psi_unavailable_using_estimates", url=url, error=psi.error)

    overall = compose_overall(internal, categories, web_vitals, vitals_source)

    payload = AuditPayload(
        timestamp=datetime.now(UTC).isoformat(timespec="seconds"),
        url=url,
        final_url=final_url,
        psi_ok=bool(psi and psi.ok),
        psi_error="" if psi is None or psi.ok else (psi.error or "Unknown error"),
        psi_scores=categories,
        web_vitals=web_vitals,
        lab_metrics=lab_metrics,
        lab_overall=lab_overall,
        vitals_source=vitals_source,
        internal=internal,
        overall=overall,
        grade=grade(overall),
        warnings=warnings,
    )

    await cache.set(payload, variant)
    await cache.save_last(payload)

    logger.info(
        "audit_completed",
        url=url,
        overall=overall,
        grade=payload.grade,
        psi_ok=payload.psi_ok,
        vitals_source=vitals_source,
    )
    return payload


def recommendations_for(
    internal: InternalAuditResult,
    registry: Mapping[str, Recommendation] | None = None,
) -> dict[str, Recommendation | None]:
    """Top recommendation for each section, from that section's checks only."""
    registry = RECOMMENDATIONS if registry is None else registry
    recommendations = {}
    for section, slugs in SECTION_CHECKS.items():
        section_checks = {slug: internal.checks[slug] for slug in slugs if slug in internal.checks}
        recommendations[section] = top_recommendation(section_checks, registry)
    return recommendations
