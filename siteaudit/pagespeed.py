"""PageSpeed Insights client.

Two ways to get Lighthouse data: the public PSI v5 API with an API key, or
a proxy that runs PSI on our behalf and returns ready-made scores. Neither
raises for network or API failures; a failed run is returned with
``ok=False`` and a readable ``error`` so the caller can fall back to
estimates.
"""

import dataclasses
import math
import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import httpx
import structlog

from siteaudit.config import Settings, clean_api_key, get_settings
from siteaudit.exceptions import ExternalServiceError, ValidationError
from siteaudit.models import VITALS_FIELD, VITALS_NONE, CategoryScores, PsiRunResult
from siteaudit.scoring.normalize import clamp_score
from siteaudit.scoring.vitals import compute_web_vitals, extract_lab_metrics

logger = structlog.get_logger(__name__)

PSI_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
PSI_CATEGORIES = ("performance", "best-practices", "seo")
PSI_MAX_REDIRECTS = 3

STRATEGIES = ("mobile", "desktop")
BOTH = "both"

# CrUX overall_category shortcut for the Web Vitals value
OVERALL_CATEGORY_SCORES = {
    "GOOD": 95,
    "NEEDS_IMPROVEMENT": 70,
    "POOR": 40,
}

NO_KEY_ERROR = "PSI HTTP 429 — No key / rate-limited"
INVALID_JSON_ERROR = "Invalid PSI JSON"
PROXY_FAILED_ERROR = "Proxy failed"

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_psi_url(url: str) -> str:
    """
    Normalize a URL before sending it to PSI.

    Adds ``https://`` when no scheme is given and a trailing slash to a
    non-empty path.

    Raises:
        ValidationError: If the URL is empty
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError("URL is required", field="url")

    if not _SCHEME_RE.match(url):
        url = "https://" + url.lstrip("/")

    parts = urlsplit(url)
    if parts.path and not parts.path.endswith("/"):
        parts = parts._replace(path=parts.path + "/")
    return urlunsplit(parts)


def _category_score(categories: dict[str, Any], key: str) -> int:
    score = (categories.get(key) or {}).get("score")
    if isinstance(score, bool) or not isinstance(score, int | float) or not math.isfinite(score):
        return 0
    return clamp_score(score * 100)


def _proxy_score(value: Any) -> int | None:
    """
    A proxy-reported score, clamped to 0-100.

    Raises:
        ValueError: If the value is not a finite number
        TypeError: If the value is not numeric at all
    """
    if value is None:
        return None
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite score: {value!r}")
    return clamp_score(number)


def parse_psi_response(data: dict[str, Any], strategy: str, requested_url: str) -> PsiRunResult:
    """
    Turn a PSI v5 JSON document into a run result.

    Web Vitals use the CrUX ``overall_category`` when present, otherwise
    the field/lab composite.
    """
    lighthouse = data.get("lighthouseResult") or {}
    categories = lighthouse.get("categories") or {}

    scores = CategoryScores(
        performance=_category_score(categories, "performance"),
        best_practices=_category_score(categories, "best-practices"),
        seo=_category_score(categories, "seo"),
        estimated=False,
    )

    web_vitals = None
    vitals_source = VITALS_NONE
    overall_category = (data.get("loadingExperience") or {}).get("overall_category")
    if overall_category is not None:
        web_vitals = OVERALL_CATEGORY_SCORES.get(str(overall_category).upper())
        vitals_source = VITALS_FIELD

    if web_vitals is None:
        vitals = compute_web_vitals(data)
        web_vitals = vitals.overall
        vitals_source = vitals.source

    lab = extract_lab_metrics(data)

    return PsiRunResult(
        ok=True,
        strategy=strategy,
        scores=scores,
        web_vitals=web_vitals,
        lab_metrics=lab.metrics,
        lab_overall=lab.overall,
        vitals_source=vitals_source,
        final_url=lighthouse.get("finalUrl") or data.get("finalUrl") or requested_url,
        warnings=[str(w) for w in lighthouse.get("runWarnings") or []],
    )


def _error_message(e: httpx.HTTPError) -> str:
    if isinstance(e, httpx.TimeoutException):
        return "Request timed out"
    return str(e) or type(e).__name__


class PageSpeedClient:
    """Calls the PageSpeed Insights v5 API directly."""

    def __init__(
        self,
        api_key: str | None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = clean_api_key(api_key)
        self._transport = transport

    async def _request(self, url: str, strategy: str) -> dict[str, Any]:
        params = [
            ("url", url),
            ("strategy", strategy),
            ("key", self.api_key),
        ]
        params.extend(("category", c) for c in PSI_CATEGORIES)

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.psi_timeout,
                follow_redirects=True,
                max_redirects=PSI_MAX_REDIRECTS,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    PSI_ENDPOINT,
                    params=params,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise ExternalServiceError("pagespeed", _error_message(e)) from e

        if not response.is_success:
            message = f"PSI HTTP {response.status_code}"
            try:
                body = response.json()
            except ValueError:
                body = None
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict) and error.get("message"):
                message += f" — {error['message']}"
            logger.warning("psi_http_error", status_code=response.status_code)
            raise ExternalServiceError("pagespeed", message)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise ExternalServiceError("pagespeed", INVALID_JSON_ERROR)
        return data

    async def run(self, url: str, strategy: str = "mobile") -> PsiRunResult:
        """
        Run PSI for one strategy.

        Args:
            url: Page to test; normalized before the request
            strategy: 'mobile' or 'desktop'

        Returns:
            PsiRunResult; ``ok`` is False with ``error`` set on failure
        """
        if not self.api_key:
            logger.info("psi_no_api_key")
            return PsiRunResult.failure(NO_KEY_ERROR, strategy)

        psi_url = normalize_psi_url(url)
        logger.info("psi_run_started", url=psi_url, strategy=strategy)

        try:
            data = await self._request(psi_url, strategy)
        except ExternalServiceError as e:
            logger.warning("psi_run_failed", url=psi_url, strategy=strategy, error=e.reason)
            return PsiRunResult.failure(e.reason, strategy)

        result = parse_psi_response(data, strategy, psi_url)
        logger.info(
            "psi_run_completed",
            url=psi_url,
            strategy=strategy,
            performance=result.scores.performance,
            web_vitals=result.web_vitals,
            vitals_source=result.vitals_source,
        )
        return result


class ProxyClient:
    """Calls a proxy that runs PSI and returns ``{scores, web_vitals}``."""

    def __init__(
        self,
        proxy_url: str,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.proxy_url = proxy_url.strip()
        self._transport = transport

    async def run(self, url: str, strategy: str = "mobile") -> PsiRunResult:
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.proxy_timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    self.proxy_url,
                    params={"url": url, "strategy": strategy},
                )
        except httpx.HTTPError as e:
            error = _error_message(e)
            logger.warning("proxy_request_failed", url=url, strategy=strategy, error=error)
            return PsiRunResult.failure(error, strategy)

        try:
            data = response.json() if response.is_success else None
        except ValueError:
            data = None

        if not isinstance(data, dict) or not isinstance(data.get("scores"), dict):
            logger.warning("proxy_bad_response", url=url, status_code=response.status_code)
            return PsiRunResult.failure(PROXY_FAILED_ERROR, strategy)

        raw_scores = data["scores"]
        web_vitals = data.get("web_vitals")
        try:
            scores = CategoryScores(
                performance=_proxy_score(raw_scores.get("performance")) or 0,
                best_practices=_proxy_score(raw_scores.get("best_practices")) or 0,
                seo=_proxy_score(raw_scores.get("seo")) or 0,
                estimated=False,
            )
            web_vitals = _proxy_score(web_vitals)
        except (TypeError, ValueError):
            logger.warning("proxy_bad_scores", url=url, scores=raw_scores)
            return PsiRunResult.failure(PROXY_FAILED_ERROR, strategy)

        return PsiRunResult(
            ok=True,
            strategy=strategy,
            scores=scores,
            web_vitals=web_vitals,
            vitals_source=data.get("vitals_source") or VITALS_NONE,
            final_url=data.get("finalUrl") or url,
        )


PsiClient = PageSpeedClient | ProxyClient


def build_psi_client(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PsiClient | None:
    """Proxy when configured, else the direct API when a key is set, else None."""
    settings = settings or get_settings()
    proxy_url = (settings.psi_proxy_url or "").strip()
    if proxy_url:
        return ProxyClient(proxy_url, settings=settings, transport=transport)
    if settings.psi_key:
        return PageSpeedClient(settings.psi_key, settings=settings, transport=transport)
    return None


async def run_strategies(client: PsiClient, url: str, strategy: str = BOTH) -> PsiRunResult:
    """
    Run PSI for one strategy or for both.

    With 'both', mobile runs first, then desktop. The returned result
    mirrors mobile when it succeeded, else desktop when that succeeded,
    else mobile; both runs are kept under ``runs``.

    Raises:
        ValidationError: If the strategy is unknown
    """
    strategy = (strategy or "").lower()
    if strategy in STRATEGIES:
        return await client.run(url, strategy)
    if strategy != BOTH:
        raise ValidationError(f"Unknown strategy: {strategy!r}", field="strategy")

    mobile = await client.run(url, "mobile")
    desktop = await client.run(url, "desktop")

    if mobile.ok:
        primary = mobile
    elif desktop.ok:
        primary = desktop
    else:
        primary = mobile

    return dataclasses.replace(primary, runs={"mobile": mobile, "desktop": desktop})
