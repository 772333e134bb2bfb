"""HTTP collaborators used by the audit checks."""

from siteaudit.crawler.fetcher import Fetcher, FetchResult, HeadResult, TimedResult

__all__ = [
    "Fetcher",
    "FetchResult",
    "HeadResult",
    "TimedResult",
]
