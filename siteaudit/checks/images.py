"""Image check: explicit dimensions and next-gen formats."""

import re

from bs4 import BeautifulSoup, Tag

from siteaudit.checks.assets import UNKNOWN_SCORE, page_error
from siteaudit.checks.models import CheckResult, ImagesMeta
from siteaudit.crawler.fetcher import FetchResult

SRC_ATTRIBUTES = ("src", "data-src", "data-lazy-src")
NEXTGEN_SRC_RE = re.compile(r"\.(webp|avif)(\?|$)", re.IGNORECASE)
NEXTGEN_SRCSET_RE = re.compile(r"\.(webp|avif)(\s|,|$)", re.IGNORECASE)
DIMENSION_RE = re.compile(r"^\s*\d+")

PENALTY_PER_MISSING_DIMS = 4
MAX_MISSING_DIMS_PENALTY = 40
NO_NEXTGEN_PENALTY = 9


def _has_dimension(img: Tag, name: str) -> bool:
    value = img.get(name)
    return isinstance(value, str) and bool(DIMENSION_RE.match(value))


def _image_source(img: Tag) -> str:
    # First lazy-load or plain source attribute in document order
    for name, value in img.attrs.items():
        if name.lower() in SRC_ATTRIBUTES and isinstance(value, str):
            return value.strip().lower()
    return ""


def _is_nextgen(img: Tag) -> bool:
    if NEXTGEN_SRC_RE.search(_image_source(img)):
        return True
    srcset = img.get("srcset")
    return isinstance(srcset, str) and bool(NEXTGEN_SRCSET_RE.search(srcset.strip().lower()))


def check_images_dims_and_size(page: FetchResult) -> CheckResult:
    """
    Score image markup.

    Starts at 100; loses 4 points per image without both width and height
    (at most 40) and a flat 9 when images exist but none is WebP/AVIF.
    """
    if not page.ok:
        return CheckResult(score=UNKNOWN_SCORE, meta=ImagesMeta(error=page_error(page)))

    soup = BeautifulSoup(page.html, "html.parser")
    images = soup.find_all("img")

    total = len(images)
    missing = sum(
        1 for img in images if not (_has_dimension(img, "width") and _has_dimension(img, "height"))
    )
    nextgen = sum(1 for img in images if _is_nextgen(img))

    score = 100
    score -= min(MAX_MISSING_DIMS_PENALTY, PENALTY_PER_MISSING_DIMS * missing)
    if total > 0 and nextgen == 0:
        score -= NO_NEXTGEN_PENALTY

    return CheckResult(
        score=max(0, min(100, score)),
        meta=ImagesMeta(total=total, missing_dims=missing, nextgen=nextgen),
    )
