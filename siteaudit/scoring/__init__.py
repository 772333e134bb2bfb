"""Scoring engine: normalization, sections, vitals, estimates and the overall score."""

from siteaudit.scoring.normalize import fmt_cls, fmt_ms, grade, score_linear
