"""Lab metrics and Web Vitals from a PageSpeed Insights response.

Field (real-user, CrUX) data is preferred over lab (Lighthouse) data. A
missing value is "unmeasured": its score is None and it is skipped when
averaging rather than counted as 0.
"""

import math
from collections.abc import Callable
from typing import Any

from siteaudit.models import VITALS_FIELD, VITALS_LAB, VITALS_NONE, LabMetric, LabMetrics, VitalsResult
from siteaudit.scoring.normalize import (
    fmt_cls,
    fmt_ms,
    grade,
    mean_score,
    score_cls,
    score_fcp_ms,
    score_inp_ms,
    score_lcp_ms,
    score_si_ms,
    score_tbt_ms,
)

# slug -> (label, Lighthouse audit id, scorer, formatter)
LAB_METRICS: dict[str, tuple[str, str, Callable, Callable]] = {
    "FCP": ("First Contentful Paint", "first-contentful-paint", score_fcp_ms, fmt_ms),
    "LCP": ("Largest Contentful Paint", "largest-contentful-paint", score_lcp_ms, fmt_ms),
    "TBT": ("Total Blocking Time", "total-blocking-time", score_tbt_ms, fmt_ms),
    "CLS": ("Cumulative Layout Shift", "cumulative-layout-shift", score_cls, fmt_cls),
    "SI": ("Speed Index", "speed-index", score_si_ms, fmt_ms),
}

# CrUX metric keys in loadingExperience.metrics
FIELD_LCP = "LARGEST_CONTENTFUL_PAINT_MS"
FIELD_CLS = "CUMULATIVE_LAYOUT_SHIFT_SCORE"
FIELD_INP = "INTERACTION_TO_NEXT_PAINT"
FIELD_FCP = "FIRST_CONTENTFUL_PAINT_MS"


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float) or not math.isfinite(value):
        return None
    return value


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def lab_value(psi_json: dict[str, Any], audit_id: str) -> float | None:
    """numericValue of a Lighthouse audit, or None when absent."""
    return _number(_dig(psi_json, "lighthouseResult", "audits", audit_id, "numericValue"))


def field_percentile(psi_json: dict[str, Any], metric: str) -> float | None:
    """75th-percentile CrUX value of a field metric, or None when absent."""
    return _number(_dig(psi_json, "loadingExperience", "metrics", metric, "percentile"))


def build_lab_metric(slug: str, value: float | None) -> LabMetric:
    label, _, scorer, formatter = LAB_METRICS[slug]
    score = scorer(value)
    return LabMetric(
        label=label,
        value_raw=value,
        value_fmt=formatter(value),
        score=score,
        grade=grade(score),
    )


def summarize_metrics(metrics: dict[str, LabMetric], source: str = VITALS_LAB) -> LabMetrics:
    return LabMetrics(
        metrics=metrics,
        overall=mean_score(m.score for m in metrics.values()),
        source=source,
    )


def extract_lab_metrics(psi_json: dict[str, Any]) -> LabMetrics:
    """Score the five lab metrics of a PSI response."""
    metrics = {
        slug: build_lab_metric(slug, lab_value(psi_json, audit_id))
        for slug, (_, audit_id, _, _) in LAB_METRICS.items()
    }
    return summarize_metrics(metrics)


def normalize_field_cls(value: float | None) -> float | None:
    """CrUX sometimes reports CLS multiplied by 100 (12 means 0.12)."""
    if value is not None and value > 1:
        return value / 100.0
    return value


def compute_web_vitals(psi_json: dict[str, Any]) -> VitalsResult:
    """
    Web Vitals composite, preferring field data over lab data.

    Field: mean of the available LCP/CLS/INP scores. Lab: mean of the
    available LCP/CLS/INP scores, or of LCP/CLS/FCP when none of those are
    present. Source is 'none' with a null overall when nothing is measured.
    """
    field_metrics = _dig(psi_json, "loadingExperience", "metrics")
    if isinstance(field_metrics, dict) and field_metrics:
        lcp = score_lcp_ms(field_percentile(psi_json, FIELD_LCP))
        cls = score_cls(normalize_field_cls(field_percentile(psi_json, FIELD_CLS)))
        inp = score_inp_ms(field_percentile(psi_json, FIELD_INP))
        overall = mean_score([lcp, cls, inp])
        if overall is not None:
            return VitalsResult(
                source=VITALS_FIELD,
                overall=overall,
                components={
                    "LCP": lcp,
                    "CLS": cls,
                    "INP": inp,
                    "FCP": score_fcp_ms(field_percentile(psi_json, FIELD_FCP)),
                },
            )

    lcp = score_lcp_ms(lab_value(psi_json, "largest-contentful-paint"))
    cls = score_cls(lab_value(psi_json, "cumulative-layout-shift"))
    inp = score_inp_ms(lab_value(psi_json, "interaction-to-next-paint"))
    fcp = score_fcp_ms(lab_value(psi_json, "first-contentful-paint"))

    overall = mean_score([lcp, cls, inp])
    if overall is None:
        overall = mean_score([lcp, cls, fcp])

    return VitalsResult(
        source=VITALS_NONE if overall is None else VITALS_LAB,
        overall=overall,
        components={"LCP": lcp, "CLS": cls, "INP": inp, "FCP": fcp},
    )
