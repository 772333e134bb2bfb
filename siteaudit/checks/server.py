"""Server checks: response time and protocol version."""

from siteaudit.checks.models import CheckResult, ProtocolMeta, TTFBMeta
from siteaudit.crawler.fetcher import Fetcher
from siteaudit.scoring.normalize import step_score

# Full-GET duration bands (ms): above threshold -> score. 200ms or less is perfect.
TTFB_STEPS = (
    (800, 20),
    (600, 40),
    (400, 60),
    (300, 80),
    (200, 90),
)
TTFB_UNKNOWN_SCORE = 50

# Weak signal: Server-Timing does not reveal the ALPN-negotiated protocol,
# so the check reports what it saw but always scores this neutral value.
PROTOCOL_NEUTRAL_SCORE = 70
PROTOCOL_UNKNOWN = "h2/h3-unknown"


def score_ttfb(ttfb_ms: int) -> int:
    return step_score(ttfb_ms, TTFB_STEPS)


async def check_ttfb(url: str, fetcher: Fetcher) -> CheckResult:
    """Time a full GET of the page and band the result."""
    timed = await fetcher.timed_get(url)
    if timed.error:
        return CheckResult(
            score=TTFB_UNKNOWN_SCORE,
            meta=TTFBMeta(ttfb_ms=timed.elapsed_ms, error=timed.error),
        )
    return CheckResult(score=score_ttfb(timed.elapsed_ms), meta=TTFBMeta(ttfb_ms=timed.elapsed_ms))


async def check_h2_h3(url: str, fetcher: Fetcher) -> CheckResult:
    """Best-effort HTTP/2 / HTTP/3 detection; scored neutrally."""
    head = await fetcher.head(url)
    alpn = "" if head.error else (head.header("server-timing") or "")

    return CheckResult(
        score=PROTOCOL_NEUTRAL_SCORE,
        meta=ProtocolMeta(
            alpn=alpn or PROTOCOL_UNKNOWN,
            http_version=head.http_version,
            error=head.error,
        ),
    )
