"""Section aggregation.

Six fixed sections, each the rounded mean of its checks. The internal
overall is the rounded mean of those six section scores.
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from siteaudit.checks.models import CheckResult
from siteaudit.models import InternalAuditResult, Section
from siteaudit.scoring.normalize import mean_score

SECTION_CHECKS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "caching": ("cache_present", "compression", "client_cache"),
        "assets": ("assets_counts", "render_blocking"),
        "images": ("images_dims_and_size",),
        "server": ("ttfb", "h2_h3"),
        "database": ("autoload_size", "postmeta_bloat", "transients"),
        "core": ("updates_core", "updates_plugins", "updates_themes"),
    }
)

SECTION_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "caching": "Caching",
        "assets": "Assets",
        "images": "Images",
        "server": "Server",
        "database": "Database",
        "core": "Core / Updates",
        "seo_basics": "SEO Basics",
    }
)

# Optional section produced by the SEO basics scanner. Feeds the estimated
# SEO category only; never part of the internal overall.
SEO_SECTION = "seo_basics"


def aggregate(results: Iterable[CheckResult | None]) -> int:
    """Rounded mean of the available check scores; 0 when there are none."""
    score = mean_score(r.score for r in results if r is not None)
    return 0 if score is None else score


def build_sections(
    checks: Mapping[str, CheckResult],
    section_checks: Mapping[str, tuple[str, ...]] = SECTION_CHECKS,
) -> dict[str, Section]:
    """Score every section from whichever of its checks are present."""
    return {
        key: Section(key=key, score=aggregate(checks.get(slug) for slug in slugs))
        for key, slugs in section_checks.items()
    }


def build_internal_result(
    checks: Mapping[str, CheckResult],
    seo_score: int | None = None,
    section_checks: Mapping[str, tuple[str, ...]] = SECTION_CHECKS,
) -> InternalAuditResult:
    """
    Assemble the internal audit result from check results.

    Args:
        checks: Check slug -> result
        seo_score: SEO basics score, stored as its own section when given
        section_checks: Section -> check slugs mapping

    Returns:
        InternalAuditResult with the six core sections and their overall
    """
    sections = build_sections(checks, section_checks)
    overall = mean_score(s.score for s in sections.values())

    if seo_score is not None:
        sections[SEO_SECTION] = Section(key=SEO_SECTION, score=seo_score)

    return InternalAuditResult(
        sections=sections,
        checks=dict(checks),
        overall=0 if overall is None else overall,
    )


def core_section_scores(internal: InternalAuditResult) -> list[int]:
    """Scores of the six core sections present in a result, in fixed order."""
    return [internal.sections[key].score for key in SECTION_CHECKS if key in internal.sections]
