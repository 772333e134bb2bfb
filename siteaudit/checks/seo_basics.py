"""SEO basics scanner.

Checks three on-page signals and blends them into one score:

- Title tag: present, length within a sensible band (34%)
- Meta description: present, length within a sensible band (33%)
- H1: exactly one heading (33%)

When enabled, the result is stored as the ``seo_basics`` section of the
internal audit and feeds the estimated SEO category.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Any

from bs4 import BeautifulSoup

from siteaudit.scoring.normalize import clamp_score, grade

# Length bands in characters (inclusive ideal ranges)
TITLE_IDEAL = (50, 60)
TITLE_SOFT_MIN = 35
TITLE_SOFT_MAX = 65

META_IDEAL = (120, 160)
META_SOFT_MIN = 80
META_SOFT_MAX = 180

WEIGHTS = {
    "title": 0.34,
    "meta_description": 0.33,
    "h1": 0.33,
}

_WS_RE = re.compile(r"\s+")


def _normalize_ws(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


@dataclass
class TextCheck:
    """Result of a title or meta-description check."""

    exists: bool = False
    text: str = ""
    length: int = 0
    score: int = 0
    issues: list[str] = field(default_factory=list)


@dataclass
class H1Check:
    """Result of the H1 check."""

    count: int = 0
    texts: list[str] = field(default_factory=list)
    score: int = 0
    issues: list[str] = field(default_factory=list)


@dataclass
class SeoBasicsResult:
    """Blended SEO basics score with per-signal details."""

    score: int
    grade: str
    title: TextCheck
    meta_description: TextCheck
    h1: H1Check
    messages: list[str] = field(default_factory=list)

    @property
    def checks(self) -> dict[str, TextCheck | H1Check]:
        return {
            "title": self.title,
            "meta_description": self.meta_description,
            "h1": self.h1,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "grade": self.grade,
            "checks": {name: asdict(check) for name, check in self.checks.items()},
            "messages": list(self.messages),
        }


def _score_length(
    length: int,
    soft_min: int,
    soft_max: int,
    ideal: tuple[int, int],
    short_issue: str,
    long_issue: str,
) -> tuple[int, list[str]]:
    score = 100
    issues = []

    if length < soft_min:
        issues.append(short_issue.format(length=length))
        score -= 25
    elif length > soft_max:
        issues.append(long_issue.format(length=length))
        score -= 15

    if ideal[0] <= length <= ideal[1]:
        score = min(100, score + 5)

    return max(0, min(100, score)), issues


def check_title(soup: BeautifulSoup) -> TextCheck:
    tag = soup.find("title")
    text = _normalize_ws(tag.get_text()) if tag else ""
    if not text:
        return TextCheck(issues=["Missing <title> tag."])

    length = len(text)
    score, issues = _score_length(
        length,
        TITLE_SOFT_MIN,
        TITLE_SOFT_MAX,
        TITLE_IDEAL,
        "Title is very short ({length} chars). Consider adding context/key terms.",
        "Title is long ({length} chars). It may be truncated in SERPs.",
    )
    return TextCheck(exists=True, text=text, length=length, score=score, issues=issues)


def check_meta_description(soup: BeautifulSoup) -> TextCheck:
    text = ""
    for meta in soup.find_all("meta"):
        if (meta.get("name") or "").strip().lower() == "description":
            text = _normalize_ws(meta.get("content") or "")
            break
    if not text:
        return TextCheck(issues=["Missing meta description."])

    length = len(text)
    score, issues = _score_length(
        length,
        META_SOFT_MIN,
        META_SOFT_MAX,
        META_IDEAL,
        "Meta description is very short ({length} chars). Add more detail/keywords.",
        "Meta description is long ({length} chars). It may be truncated.",
    )
    return TextCheck(exists=True, text=text, length=length, score=score, issues=issues)


def check_h1(soup: BeautifulSoup) -> H1Check:
    texts = [_normalize_ws(h1.get_text()) for h1 in soup.find_all("h1")]
    count = len(texts)

    if count == 0:
        return H1Check(issues=["No <h1> found. Add a single descriptive H1 heading."])

    score = 100
    issues = []
    if count > 1:
        issues.append(f"Found {count} <h1> tags. Use a single H1 for clarity.")
        score -= min(50, 10 * (count - 1))

    return H1Check(count=count, texts=texts, score=max(0, score), issues=issues)


def _empty_result(message: str, url: str) -> SeoBasicsResult:
    if url:
        message += f" URL: {url}"
    return SeoBasicsResult(
        score=0,
        grade="F",
        title=TextCheck(),
        meta_description=TextCheck(),
        h1=H1Check(),
        messages=[message],
    )


def analyze(html: str, url: str = "") -> SeoBasicsResult:
    """
    Run the SEO basics checks against a page's HTML.

    Args:
        html: Page markup
        url: Page URL, used only in messages

    Returns:
        SeoBasicsResult with the blended score and de-duplicated issues
    """
    if not html:
        return _empty_result("Empty HTML received; unable to run SEO basics.", url)

    soup = BeautifulSoup(html, "html.parser")
    title = check_title(soup)
    meta = check_meta_description(soup)
    h1 = check_h1(soup)

    score = clamp_score(
        title.score * WEIGHTS["title"]
        + meta.score * WEIGHTS["meta_description"]
        + h1.score * WEIGHTS["h1"]
    )

    messages = list(dict.fromkeys(i for i in title.issues + meta.issues + h1.issues if i))
    if not messages and url:
        messages.append(f"SEO basics scan completed for {url}.")

    return SeoBasicsResult(
        score=score,
        grade=grade(score),
        title=title,
        meta_description=meta,
        h1=h1,
        messages=messages,
    )
