"""Asset checks: CSS/JS request counts and render-blocking resources."""

from bs4 import BeautifulSoup, Tag

from siteaudit.checks.models import AssetCountsMeta, CheckResult, RenderBlockingMeta
from siteaudit.crawler.fetcher import FetchResult

# Files allowed before each extra one costs points
CSS_ALLOWANCE = 3
JS_ALLOWANCE = 5
PENALTY_PER_EXTRA_FILE = 5
PENALTY_PER_BLOCKING_RESOURCE = 10

# Score when the page could not be fetched
UNKNOWN_SCORE = 50


def page_error(page: FetchResult) -> str:
    return page.error or f"HTTP {page.status_code}"


def is_stylesheet(tag: Tag) -> bool:
    rel = [r.lower() for r in tag.get("rel") or []]
    return "stylesheet" in rel


def stylesheet_links(root: Tag) -> list[Tag]:
    return [link for link in root.find_all("link") if is_stylesheet(link)]


def external_scripts(root: Tag) -> list[Tag]:
    return [s for s in root.find_all("script") if (s.get("src") or "").strip()]


def check_assets_counts(page: FetchResult) -> CheckResult:
    """
    Count stylesheet links and external scripts.

    Starts at 100; each CSS file beyond 3 and each JS file beyond 5 costs
    5 points, floored at 0.
    """
    if not page.ok:
        return CheckResult(score=UNKNOWN_SCORE, meta=AssetCountsMeta(error=page_error(page)))

    soup = BeautifulSoup(page.html, "html.parser")
    css = len(stylesheet_links(soup))
    js = len(external_scripts(soup))

    score = 100
    score -= max(0, css - CSS_ALLOWANCE) * PENALTY_PER_EXTRA_FILE
    score -= max(0, js - JS_ALLOWANCE) * PENALTY_PER_EXTRA_FILE

    return CheckResult(score=max(0, min(100, score)), meta=AssetCountsMeta(css=css, js=js))


def check_render_blocking(page: FetchResult) -> CheckResult:
    """
    Count render-blocking resources inside ``<head>``.

    Stylesheets block unless ``media="print"``; external scripts block
    unless they carry ``defer`` or ``async``. Each costs 10 points.
    """
    if not page.ok:
        return CheckResult(score=UNKNOWN_SCORE, meta=RenderBlockingMeta(error=page_error(page)))

    soup = BeautifulSoup(page.html, "html.parser")
    blocking_css = 0
    blocking_js = 0

    if soup.head is not None:
        for link in stylesheet_links(soup.head):
            if (link.get("media") or "").strip().lower() == "print":
                continue
            blocking_css += 1
        for script in external_scripts(soup.head):
            if script.has_attr("defer") or script.has_attr("async"):
                continue
            blocking_js += 1

    score = max(0, 100 - PENALTY_PER_BLOCKING_RESOURCE * (blocking_css + blocking_js))
    return CheckResult(
        score=score,
        meta=RenderBlockingMeta(blocking_css=blocking_css, blocking_js=blocking_js),
    )
