"""Estimates used when PageSpeed Insights is unavailable.

Category scores are averages of internal section scores. Web Vitals are
synthesized from check metadata with fixed heuristics; they are shown to
the user but never counted in the overall score.
"""

from siteaudit.checks.models import AssetCountsMeta, ImagesMeta, RenderBlockingMeta, TTFBMeta
from siteaudit.models import VITALS_INTERNAL, CategoryScores, InternalAuditResult, LabMetrics
from siteaudit.scoring.normalize import clamp_score, round_to
from siteaudit.scoring.sections import SEO_SECTION
from siteaudit.scoring.vitals import build_lab_metric, summarize_metrics

PERFORMANCE_SECTIONS = ("caching", "assets", "images", "server")
# server is shared with performance
BEST_PRACTICES_SECTIONS = ("core", "database", "server")

# Plausible ranges the synthetic values are clamped to
FCP_RANGE = (500, 4000)
LCP_RANGE = (800, 5000)
TBT_RANGE = (0, 1000)
CLS_RANGE = (0.0, 0.4)
SI_RANGE = (1000, 6000)

# Weak signal: layout shift guess when the page has no images to inspect
CLS_NO_IMAGES_BLOCKING = 0.07
CLS_NO_IMAGES_CLEAN = 0.03


def _clamp(value, bounds):
    low, high = bounds
    return max(low, min(high, value))


def _section_mean(internal: InternalAuditResult, keys: tuple[str, ...]) -> int:
    return clamp_score(sum(internal.section_score(k) for k in keys) / len(keys))


def estimate_categories(internal: InternalAuditResult) -> CategoryScores:
    """
    Approximate Lighthouse category scores from internal sections.

    SEO is the SEO basics section score when that scan ran, else 0.
    """
    seo = internal.sections.get(SEO_SECTION)
    return CategoryScores(
        performance=_section_mean(internal, PERFORMANCE_SECTIONS),
        best_practices=_section_mean(internal, BEST_PRACTICES_SECTIONS),
        seo=clamp_score(seo.score) if seo is not None else 0,
        estimated=True,
    )


def _meta(internal: InternalAuditResult, slug: str, meta_type):
    meta = internal.meta(slug)
    return meta if isinstance(meta, meta_type) else meta_type()


def estimate_web_vitals(internal: InternalAuditResult) -> LabMetrics:
    """Synthesize FCP/LCP/TBT/CLS/SI from internal check metadata."""
    ttfb_ms = max(0, _meta(internal, "ttfb", TTFBMeta).ttfb_ms)
    assets = _meta(internal, "assets_counts", AssetCountsMeta)
    blocking = _meta(internal, "render_blocking", RenderBlockingMeta)
    images = _meta(internal, "images_dims_and_size", ImagesMeta)

    total_assets = assets.css + assets.js
    blocking_total = blocking.blocking_css + blocking.blocking_js

    # FCP: server time, render-blocking resources, request overhead past 20 files
    fcp = 800 + ttfb_ms
    fcp += min(2000, 200 * blocking.blocking_css + 100 * blocking.blocking_js)
    fcp += min(1000, 10 * max(0, total_assets - 20))
    fcp = _clamp(fcp, FCP_RANGE)

    # LCP: FCP plus image readiness and blocking resources
    image_penalty = 0.0
    missing_ratio = 0.0
    if images.total > 0:
        nextgen_ratio = _clamp(images.nextgen / images.total, (0.0, 1.0))
        missing_ratio = _clamp(images.missing_dims / images.total, (0.0, 1.0))
        image_penalty += (1.0 - nextgen_ratio) * 400
        image_penalty += missing_ratio * 600
        if images.total > 30:
            image_penalty += min(800, (images.total - 30) * 12)
    lcp = fcp + int(0.6 * image_penalty) + 120 * blocking_total
    lcp = _clamp(lcp, LCP_RANGE)

    # TBT: blocking scripts and a large number of JS files
    tbt = int(75 * blocking.blocking_js + max(0, assets.js - 20) * 15)
    tbt = _clamp(tbt, TBT_RANGE)

    # CLS: share of images without dimensions mapped onto 0-0.30
    if images.total > 0:
        cls = round_to(0.30 * missing_ratio, 3)
    else:
        cls = CLS_NO_IMAGES_BLOCKING if blocking_total > 0 else CLS_NO_IMAGES_CLEAN
    cls = _clamp(cls, CLS_RANGE)

    # SI: asset volume, blocking resources and a fraction of server time
    si = 1500 + 40 * total_assets + 250 * blocking_total + int(0.2 * ttfb_ms)
    si = _clamp(si, SI_RANGE)

    metrics = {
        "FCP": build_lab_metric("FCP", fcp),
        "LCP": build_lab_metric("LCP", lcp),
        "TBT": build_lab_metric("TBT", tbt),
        "CLS": build_lab_metric("CLS", cls),
        "SI": build_lab_metric("SI", si),
    }
    return summarize_metrics(metrics, source=VITALS_INTERNAL)

