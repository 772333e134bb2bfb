"""Tests for metric normalization, grades and formatting."""

import pytest

from siteaudit.scoring.normalize import (
    MISSING_VALUE,
    UNKNOWN_GRADE,
    clamp_score,
    fmt_cls,
    fmt_ms,
    grade,
    mean_score,
    round_half_away,
    round_to,
    score_cls,
    score_fcp_ms,
    score_inp_ms,
    score_lcp_ms,
    score_linear,
    score_si_ms,
    score_tbt_ms,
    step_score,
)


class TestRounding:
    """Tests for half-away-from-zero rounding."""

    def test_halves_round_away_from_zero(self) -> None:
        assert round_half_away(2.5) == 3
        assert round_half_away(3.5) == 4
        assert round_half_away(0.5) == 1
        assert round_half_away(-2.5) == -3

    def test_non_halves(self) -> None:
        assert round_half_away(2.4) == 2
        assert round_half_away(2.6) == 3
        assert round_half_away(0) == 0

    def test_round_to_places(self) -> None:
        assert round_to(0.0625, 3) == 0.063
        assert round_to(42.25, 1) == 42.3
        assert round_to(40.0, 1) == 40.0

    def test_clamp_score(self) -> None:
        assert clamp_score(-5) == 0
        assert clamp_score(120) == 100
        assert clamp_score(59.5) == 60

    def test_mean_score_skips_none(self) -> None:
        assert mean_score([90, None, 81]) == 86
        assert mean_score([None, None]) is None
        assert mean_score([]) is None


class TestScoreLinear:
    """Tests for the linear good/poor model."""

    def test_endpoints(self) -> None:
        assert score_linear(10, good=10, poor=20) == 100
        assert score_linear(20, good=10, poor=20) == 0

    def test_outside_range_is_clamped(self) -> None:
        assert score_linear(0, good=10, poor=20) == 100
        assert score_linear(100, good=10, poor=20) == 0

    def test_midpoint(self) -> None:
        assert score_linear(15, good=10, poor=20) == 50

    def test_none_propagates(self) -> None:
        assert score_linear(None, good=10, poor=20) is None

    def test_zero_is_a_measurement(self) -> None:
        assert score_linear(0, good=0.1, poor=0.25) == 100

    def test_monotonically_non_increasing(self) -> None:
        scores = [score_linear(v, good=200, poor=600) for v in range(0, 801, 25)]
        assert scores == sorted(scores, reverse=True)


class TestNamedScorers:
    """Tests for the fixed metric thresholds."""

    @pytest.mark.parametrize(
        "scorer,good,poor",
        [
            (score_fcp_ms, 1800, 3000),
            (score_lcp_ms, 2500, 4000),
            (score_tbt_ms, 200, 600),
            (score_si_ms, 3400, 5800),
            (score_inp_ms, 200, 500),
        ],
    )
    def test_thresholds(self, scorer, good, poor) -> None:
        assert scorer(good) == 100
        assert scorer(poor) == 0
        assert scorer((good + poor) / 2) == 50
        assert scorer(None) is None

    def test_cls_thresholds(self) -> None:
        assert score_cls(0.10) == 100
        assert score_cls(0.25) == 0
        assert score_cls(0.16) == 60
        assert score_cls(None) is None


class TestGrade:
    """Tests for letter grades."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, "A"),
            (90, "A"),
            (89, "B"),
            (80, "B"),
            (79, "C"),
            (70, "C"),
            (69, "D"),
            (60, "D"),
            (59, "F"),
            (0, "F"),
        ],
    )
    def test_breakpoints(self, score: int, expected: str) -> None:
        assert grade(score) == expected

    def test_none_is_unknown_not_f(self) -> None:
        assert grade(None) == UNKNOWN_GRADE
        assert grade(None) != "F"


class TestFormatting:
    """Tests for display formatting."""

    def test_fmt_ms(self) -> None:
        assert fmt_ms(2500) == "2.5 s"
        assert fmt_ms(999) == "999 ms"
        assert fmt_ms(None) == MISSING_VALUE
        assert fmt_ms(None) == "—"

    def test_fmt_ms_seconds(self) -> None:
        assert fmt_ms(1000) == "1 s"
        assert fmt_ms(1234) == "1.23 s"
        assert fmt_ms(12345) == "12.35 s"

    def test_fmt_ms_truncates_below_one_second(self) -> None:
        assert fmt_ms(999.9) == "999 ms"
        assert fmt_ms(0) == "0 ms"

    def test_fmt_cls(self) -> None:
        assert fmt_cls(0.1) == "0.1"
        assert fmt_cls(0.25) == "0.25"
        assert fmt_cls(0.0625) == "0.063"
        assert fmt_cls(0) == "0"
        assert fmt_cls(None) == MISSING_VALUE


class TestStepScore:
    """Tests for threshold ladders."""

    STEPS = ((800, 20), (600, 40), (200, 90))

    def test_first_exceeded_threshold_wins(self) -> None:
        assert step_score(900, self.STEPS) == 20
        assert step_score(700, self.STEPS) == 40
        assert step_score(201, self.STEPS) == 90

    def test_boundaries_are_exclusive(self) -> None:
        assert step_score(800, self.STEPS) == 40
        assert step_score(200, self.STEPS) == 100

    def test_default(self) -> None:
        assert step_score(0, self.STEPS) == 100
        assert step_score(0, self.STEPS, default=75) == 75
