"""Pending update checks for core, plugins and themes."""

from collections.abc import Callable

import structlog

from siteaudit.checks.database import INVENTORY_UNKNOWN_SCORE, NO_INVENTORY
from siteaudit.checks.models import CheckResult, UpdatesMeta
from siteaudit.exceptions import InventoryError
from siteaudit.inventory.base import SiteInventory
from siteaudit.scoring.normalize import step_score

logger = structlog.get_logger(__name__)

# Any pending core update costs the same
CORE_STEPS = ((0, 60),)
PLUGIN_STEPS = (
    (15, 20),
    (8, 40),
    (3, 60),
    (0, 80),
)
THEME_STEPS = (
    (10, 20),
    (5, 40),
    (2, 60),
    (0, 80),
)


def _check_updates(
    kind: str,
    inventory: SiteInventory | None,
    counter: Callable[[SiteInventory], int],
    steps: tuple[tuple[float, int], ...],
) -> CheckResult:
    if inventory is None:
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=UpdatesMeta(error=NO_INVENTORY))

    try:
        count = counter(inventory)
    except InventoryError as e:
        logger.warning("update_count_failed", kind=kind, error=e.message)
        return CheckResult(score=INVENTORY_UNKNOWN_SCORE, meta=UpdatesMeta(error=e.message))

    return CheckResult(score=step_score(count, steps), meta=UpdatesMeta(count=count))


def check_updates_core(inventory: SiteInventory | None) -> CheckResult:
    return _check_updates("core", inventory, lambda inv: inv.pending_core_updates(), CORE_STEPS)


def check_updates_plugins(inventory: SiteInventory | None) -> CheckResult:
    return _check_updates(
        "plugins", inventory, lambda inv: inv.pending_plugin_updates(), PLUGIN_STEPS
    )


def check_updates_themes(inventory: SiteInventory | None) -> CheckResult:
    return _check_updates("themes", inventory, lambda inv: inv.pending_theme_updates(), THEME_STEPS)
