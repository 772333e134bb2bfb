"""Metric normalization, letter grades and display formatting.

Every physical measurement (milliseconds, unitless layout shift) is mapped
onto 0-100 with a linear good/poor model: at or below ``good`` scores 100,
at or above ``poor`` scores 0, linear in between.

``None`` means "unmeasured" and is propagated, never coerced to 0.
"""

import math
from decimal import ROUND_HALF_UP, Decimal

# Placeholder rendered for unmeasured values
MISSING_VALUE = "—"

# Grade shown when there is no score at all (distinct from "F")
UNKNOWN_GRADE = "–"

# (good, poor) thresholds. Milliseconds unless noted.
FCP_THRESHOLDS = (1800, 3000)
LCP_THRESHOLDS = (2500, 4000)
TBT_THRESHOLDS = (200, 600)
SI_THRESHOLDS = (3400, 5800)
CLS_THRESHOLDS = (0.10, 0.25)  # unitless
INP_THRESHOLDS = (200, 500)

GRADE_BREAKPOINTS = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp_score(value: float) -> int:
    """Round and clamp any number into the 0-100 score range."""
    return max(0, min(100, round_half_away(value)))


def mean_score(values) -> int | None:
    """Rounded mean of the non-null values, or None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return round_half_away(sum(present) / len(present))


def score_linear(value: float | None, good: float, poor: float) -> int | None:
    """
    Score a raw value on a linear good/poor scale.

    Args:
        value: Raw measurement, or None when unmeasured
        good: Value at or below which the score is 100
        poor: Value at or above which the score is 0

    Returns:
        Integer score 0-100, or None when ``value`` is None
    """
    if value is None:
        return None
    if value <= good:
        return 100
    if value >= poor:
        return 0
    t = (value - good) / (poor - good)
    return clamp_score(100 - 100 * t)


def score_fcp_ms(ms: float | None) -> int | None:
    return score_linear(ms, *FCP_THRESHOLDS)


def score_lcp_ms(ms: float | None) -> int | None:
    return score_linear(ms, *LCP_THRESHOLDS)


def score_tbt_ms(ms: float | None) -> int | None:
    return score_linear(ms, *TBT_THRESHOLDS)


def score_si_ms(ms: float | None) -> int | None:
    return score_linear(ms, *SI_THRESHOLDS)


def score_cls(value: float | None) -> int | None:
    return score_linear(value, *CLS_THRESHOLDS)


def score_inp_ms(ms: float | None) -> int | None:
    return score_linear(ms, *INP_THRESHOLDS)


def grade(score: int | None) -> str:
    """Letter grade for a 0-100 score; None gives the unknown marker."""
    if score is None:
        return UNKNOWN_GRADE
    for floor, letter in GRADE_BREAKPOINTS:
        if score >= floor:
            return letter
    return "F"


def _fixed(value: float, places: int) -> str:
    """Format with thousands separators and half-up rounding, zeros trimmed."""
    quantum = Decimal(1).scaleb(-places)
    text = f"{Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP):,}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def fmt_ms(ms: float | None) -> str:
    """Render milliseconds: "999 ms" below one second, "2.5 s" above."""
    if ms is None:
        return MISSING_VALUE
    if ms < 1000:
        return f"{int(ms)} ms"
    return f"{_fixed(ms / 1000, 2)} s"


def fmt_cls(value: float | None) -> str:
    """Render a layout-shift value to three decimals, zeros trimmed."""
    if value is None:
        return MISSING_VALUE
    return _fixed(value, 3)


def step_score(value: float, steps: tuple[tuple[float, int], ...], default: int = 100) -> int:
    """
    Score from a descending ladder of (threshold, score) pairs.

    The first threshold that ``value`` exceeds decides the score; values
    at or below every threshold get ``default``.
    """
    for threshold, score in steps:
        if value > threshold:
            return score
    return default


def round_to(value: float, places: int) -> float:
    """Round to ``places`` decimals, halves away from zero (0.0625 -> 0.063)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
