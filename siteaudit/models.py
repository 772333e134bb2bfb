"""Audit result models.

Everything here serializes to the JSON-compatible payload that is cached,
persisted as the last audit snapshot and printed by ``site-audit run --json``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from siteaudit.checks.models import CacheLayersReport, CheckResult

# Where the Web Vitals value came from
VITALS_FIELD = "field"
VITALS_LAB = "lab"
VITALS_INTERNAL = "internal"
VITALS_NONE = "none"

CATEGORY_KEYS = ("performance", "best_practices", "seo")


@dataclass(frozen=True)
class Section:
    """Average score of a fixed group of checks."""

    key: str
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score}


@dataclass
class InternalAuditResult:
    """Check results, section scores and their unweighted overall."""

    sections: dict[str, Section]
    checks: dict[str, CheckResult]
    overall: int
    cache_layers: CacheLayersReport | None = None

    def section_score(self, key: str, default: int = 0) -> int:
        section = self.sections.get(key)
        return section.score if section is not None else default

    def meta(self, slug: str):
        """Metadata of one check, or None when the check did not run."""
        result = self.checks.get(slug)
        return result.meta if result is not None else None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "sections": {key: s.to_dict() for key, s in self.sections.items()},
            "checks": {slug: r.to_dict() for slug, r in self.checks.items()},
            "overall": self.overall,
        }
        if self.cache_layers is not None:
            data["cache_layers"] = self.cache_layers.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InternalAuditResult:
        sections = {
            key: Section(key=key, score=int((value or {}).get("score", 0)))
            for key, value in (data.get("sections") or {}).items()
        }
        checks = {
            slug: CheckResult.from_dict(slug, value)
            for slug, value in (data.get("checks") or {}).items()
        }
        layers = data.get("cache_layers")
        return cls(
            sections=sections,
            checks=checks,
            overall=int(data.get("overall", 0)),
            cache_layers=CacheLayersReport.from_dict(layers) if layers else None,
        )


@dataclass(frozen=True)
class CategoryScores:
    """Performance / best-practices / SEO scores, real or estimated."""

    performance: int = 0
    best_practices: int = 0
    seo: int = 0
    estimated: bool = False

    def values(self) -> list[int]:
        return [self.performance, self.best_practices, self.seo]

    def to_dict(self) -> dict[str, Any]:
        return {
            "performance": self.performance,
            "best_practices": self.best_practices,
            "seo": self.seo,
            "_estimated": self.estimated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CategoryScores:
        data = data or {}
        return cls(
            performance=int(data.get("performance") or 0),
            best_practices=int(data.get("best_practices") or 0),
            seo=int(data.get("seo") or 0),
            estimated=bool(data.get("_estimated", False)),
        )


@dataclass(frozen=True)
class LabMetric:
    """One scored timing metric (FCP, LCP, TBT, CLS or SI)."""

    label: str
    value_raw: float | None
    value_fmt: str
    score: int | None  # None means unmeasured, never 0
    grade: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "value_raw": self.value_raw,
            "value_fmt": self.value_fmt,
            "score": self.score,
            "grade": self.grade,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LabMetric:
        return cls(
            label=data.get("label", ""),
            value_raw=data.get("value_raw"),
            value_fmt=data.get("value_fmt", ""),
            score=data.get("score"),
            grade=data.get("grade", ""),
        )


@dataclass
class LabMetrics:
    """The five lab metrics plus the mean of their available scores."""

    metrics: dict[str, LabMetric]
    overall: int | None
    source: str = VITALS_LAB


@dataclass(frozen=True)
class VitalsResult:
    """Web Vitals composite and the provenance of its inputs."""

    source: str
    overall: int | None
    components: dict[str, int | None] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "overall": self.overall,
            "components": dict(self.components),
        }


@dataclass
class PsiRunResult:
    """Outcome of one PageSpeed Insights (or proxy) run."""

    ok: bool
    strategy: str = "mobile"
    error: str = ""
    scores: CategoryScores | None = None
    web_vitals: int | None = None
    lab_metrics: dict[str, LabMetric] = field(default_factory=dict)
    lab_overall: int | None = None
    vitals_source: str = VITALS_NONE
    final_url: str = ""
    warnings: list[str] = field(default_factory=list)
    runs: dict[str, PsiRunResult] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, strategy: str = "mobile") -> PsiRunResult:
        return cls(ok=False, strategy=strategy, error=error)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "ok": self.ok,
            "error": self.error,
            "strategy": self.strategy,
            "scores": self.scores.to_dict() if self.scores else {},
            "web_vitals": self.web_vitals,
            "lab_metrics": {k: m.to_dict() for k, m in self.lab_metrics.items()},
            "lab_overall": self.lab_overall,
            "vitals_source": self.vitals_source,
            "finalUrl": self.final_url,
            "warnings": list(self.warnings),
        }
        if self.runs:
            data["runs"] = {k: r.to_dict() for k, r in self.runs.items()}
        return data


@dataclass
class AuditPayload:
    """The persisted audit snapshot. Only the latest one is kept."""

    timestamp: str
    url: str
    final_url: str
    psi_ok: bool
    psi_error: str
    psi_scores: CategoryScores
    web_vitals: int | None
    lab_metrics: dict[str, LabMetric]
    lab_overall: int | None
    vitals_source: str
    internal: InternalAuditResult
    overall: int
    grade: str
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "url": self.url,
            "finalUrl": self.final_url,
            "psi_ok": self.psi_ok,
            "psi_error": self.psi_error,
            "psi_scores": self.psi_scores.to_dict(),
            "web_vitals": self.web_vitals,
            "lab_metrics": {k: m.to_dict() for k, m in self.lab_metrics.items()},
            "lab_overall": self.lab_overall,
            "vitals_source": self.vitals_source,
            "internal": self.internal.to_dict(),
            "overall": self.overall,
            "grade": self.grade,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditPayload:
        url = data.get("url", "")
        return cls(
            timestamp=data.get("timestamp", ""),
            url=url,
            final_url=data.get("finalUrl") or url,
            psi_ok=bool(data.get("psi_ok", False)),
            psi_error=data.get("psi_error", ""),
            psi_scores=CategoryScores.from_dict(data.get("psi_scores")),
            web_vitals=data.get("web_vitals"),
            lab_metrics={
                k: LabMetric.from_dict(v) for k, v in (data.get("lab_metrics") or {}).items()
            },
            lab_overall=data.get("lab_overall"),
            vitals_source=data.get("vitals_source", VITALS_NONE),
            internal=InternalAuditResult.from_dict(data.get("internal") or {}),
            overall=int(data.get("overall", 0)),
            grade=data.get("grade", ""),
            warnings=list(data.get("warnings") or []),
        )
