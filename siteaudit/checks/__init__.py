"""Internal audit checks.

Each check returns a CheckResult and never raises for fetch or inventory
failures; it scores a documented fallback and records ``meta.error``.
"""

from siteaudit.checks.assets import check_assets_counts, check_render_blocking
from siteaudit.checks.caching import check_cache_present, check_client_cache, check_compression
from siteaudit.checks.database import check_autoload_size, check_postmeta_bloat, check_transients
from siteaudit.checks.images import check_images_dims_and_size
from siteaudit.checks.models import CHECK_LABELS, META_TYPES, CheckMeta, CheckResult
from siteaudit.checks.server import check_h2_h3, check_ttfb
from siteaudit.checks.updates import check_updates_core, check_updates_plugins, check_updates_themes

__all__ = [
    "CHECK_LABELS",
    "META_TYPES",
    "CheckMeta",
    "CheckResult",
    "check_assets_counts",
    "check_autoload_size",
    "check_cache_present",
    "check_client_cache",
    "check_compression",
    "check_h2_h3",
    "check_images_dims_and_size",
    "check_postmeta_bloat",
    "check_render_blocking",
    "check_transients",
    "check_ttfb",
    "check_updates_core",
    "check_updates_plugins",
    "check_updates_themes",
]
