"""Overall score composition."""

from siteaudit.models import VITALS_FIELD, VITALS_LAB, CategoryScores, InternalAuditResult
from siteaudit.scoring.normalize import mean_score
from siteaudit.scoring.sections import core_section_scores

# Only measured vitals count. Internal estimates are display-only.
COUNTED_VITALS_SOURCES = frozenset({VITALS_LAB, VITALS_FIELD})


def compose_overall(
    internal: InternalAuditResult,
    category_scores: CategoryScores | None,
    web_vitals: int | None,
    vitals_source: str,
) -> int:
    """
    Blend section, category and Web Vitals scores into one number.

    Every core section score and every category score (real or estimated)
    is one part; the Web Vitals score joins only when it was measured from
    lab or field data. Unweighted rounded mean, 0 when there are no parts.
    """
    parts: list[int] = core_section_scores(internal)
    if category_scores is not None:
        parts.extend(category_scores.values())
    if web_vitals is not None and vitals_source in COUNTED_VITALS_SOURCES:
        parts.append(web_vitals)

    overall = mean_score(parts)
    return 0 if overall is None else overall
