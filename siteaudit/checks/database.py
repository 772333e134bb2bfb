"""Database health checks backed by the site inventory."""

import time

import structlog

from siteaudit.checks.models import AutoloadMeta, CheckResult, PostmetaMeta, TransientsMeta
from siteaudit.exceptions import InventoryError
from siteaudit.inventory.base import SiteInventory
from siteaudit.scoring.normalize import round_to, step_score

logger = structlog.get_logger(__name__)

NO_INVENTORY = "No site inventory configured"
INVENTORY_UNKNOWN_SCORE = 50

# (threshold, score) ladders: first threshold exceeded wins, otherwise 100
AUTOLOAD_STEPS = (
    (1024 * 1024, 40),
    (512 * 1024, 60),
    (128 * 1024, 80),
)
POSTMETA_STEPS = (
    (120, 40),
    (80, 60),
    (40, 80),
)
TRANSIENT_STEPS = (
    (1000, 40),
    (200, 60),
    (20, 80),
)

RECENT_POSTS_SAMPLE = 20


def check_autoload_size(inventory: SiteInventory | None) -> CheckResult:
    """Score the total size of autoloaded options."""
    if inventory is None:
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=AutoloadMeta(error=NO_INVENTORY))

    try:
        size = inventory.autoload_bytes()
    except InventoryError as e:
        logger.warning("autoload_size_failed", error=e.message)
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=AutoloadMeta(error=e.message))

    return CheckResult(score=step_score(size, AUTOLOAD_STEPS), meta=AutoloadMeta(bytes=size))


def check_postmeta_bloat(inventory: SiteInventory | None) -> CheckResult:
    """Score the average metadata row count of the newest published posts."""
    if inventory is None:
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=PostmetaMeta(error=NO_INVENTORY))

    try:
        counts = inventory.recent_post_meta_counts(limit=RECENT_POSTS_SAMPLE)
    except InventoryError as e:
        logger.warning("postmeta_bloat_failed", error=e.message)
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=PostmetaMeta(error=e.message))

    avg = round_to(sum(counts) / len(counts), 1) if counts else 0.0
    return CheckResult(score=step_score(avg, POSTMETA_STEPS), meta=PostmetaMeta(avg_meta=avg))


def check_transients(inventory: SiteInventory | None, now: int | None = None) -> CheckResult:
    """Score the number of transients past their expiry time."""
    if inventory is None:
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=TransientsMeta(error=NO_INVENTORY))

    now = int(time.time()) if now is None else now
    try:
        expired = inventory.expired_transient_count(now)
    except InventoryError as e:
        logger.warning("transients_check_failed", error=e.message)
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=TransientsMeta(error=e.message))

    return CheckResult(
        score=step_score(expired, TRANSIENT_STEPS),
        meta=TransientsMeta(expired=expired),
    )
