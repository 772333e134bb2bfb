"""Site inventory: facts about the site that are not visible over HTTP.

The database and core checks read option sizes, post metadata, expired
transients, pending updates and caching configuration through this
interface, so the scoring code never talks to a database directly.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from siteaudit.config import Settings
from siteaudit.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# Plugin file -> label, as listed in the active_plugins option
PAGE_CACHE_PLUGINS = {
    "wp-rocket/wp-rocket.php": "WP Rocket",
    "w3-total-cache/w3-total-cache.php": "W3 Total Cache",
    "wp-super-cache/wp-cache.php": "WP Super Cache",
    "litespeed-cache/litespeed-cache.php": "LiteSpeed Cache",
    "hummingbird-performance/wp-hummingbird.php": "Hummingbird",
    "cache-enabler/cache-enabler.php": "Cache Enabler",
    "sg-cachepress/sg-cachepress.php": "SG Optimizer",
    "swift-performance-lite/performance.php": "Swift Performance",
    "comet-cache/comet-cache.php": "Comet Cache",
    "nitropack/main.php": "NitroPack",
}

OBJECT_CACHE_PLUGINS = {
    "redis-cache/redis-cache.php": "Redis Object Cache",
    "w3-total-cache/w3-total-cache.php": "W3TC (Object Cache)",
    "litespeed-cache/litespeed-cache.php": "LiteSpeed (Object Cache)",
    "memcached-redux/memcached-redux.php": "Memcached Redux",
    "docket-cache/docket-cache.php": "Docket Cache",
    "object-cache-pro/object-cache-pro.php": "Object Cache Pro",
}

# Cache drop-ins WordPress loads from wp-content
ADVANCED_CACHE_DROPIN = "advanced-cache.php"
OBJECT_CACHE_DROPIN = "object-cache.php"
CACHE_DROPINS = (ADVANCED_CACHE_DROPIN, OBJECT_CACHE_DROPIN)


def first_page_cache_plugin(active_plugins: list[str]) -> str:
    """Label of the first active page-cache plugin, or an empty string."""
    for plugin_file, label in PAGE_CACHE_PLUGINS.items():
        if plugin_file in active_plugins:
            return label
    return ""


@runtime_checkable
class SiteInventory(Protocol):
    """Read-only view of the site's configuration store."""

    def autoload_bytes(self) -> int:
        """Total byte length of all autoloaded option values."""
        ...

    def recent_post_meta_counts(self, limit: int = 20) -> list[int]:
        """Metadata row count for each of the ``limit`` newest published posts."""
        ...

    def expired_transient_count(self, now: int) -> int:
        """Number of transients whose expiry timestamp is before ``now``."""
        ...

    def pending_core_updates(self) -> int: ...

    def pending_plugin_updates(self) -> int: ...

    def pending_theme_updates(self) -> int: ...

    def active_cache_plugin(self) -> str:
        """Label of an active page-cache plugin, or an empty string."""
        ...

    def active_plugins(self) -> list[str]:
        """Plugin files listed in the active_plugins option."""
        ...

    def dropins(self) -> list[str]:
        """Cache drop-in files present in wp-content."""
        ...

    def cache_constant_defined(self) -> bool: ...


class StaticInventory(BaseModel):
    """Inventory facts supplied directly (JSON file, CLI, tests)."""

    autoload_size_bytes: int = Field(default=0, ge=0)
    post_meta_counts: list[int] = Field(default_factory=list)
    expired_transients: int = Field(default=0, ge=0)
    core_updates: int = Field(default=0, ge=0)
    plugin_updates: int = Field(default=0, ge=0)
    theme_updates: int = Field(default=0, ge=0)
    cache_plugin: str = ""
    plugins: list[str] = Field(default_factory=list)
    dropin_files: list[str] = Field(default_factory=list)
    wp_cache: bool = False

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticInventory":
        """Load inventory facts from a JSON document."""
        path = Path(path)
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Inventory file not found: {path}") from e
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid inventory file {path}: {e}") from e

    def autoload_bytes(self) -> int:
        return self.autoload_size_bytes

    def recent_post_meta_counts(self, limit: int = 20) -> list[int]:
        return self.post_meta_counts[:limit]

    def expired_transient_count(self, now: int) -> int:
        return self.expired_transients

    def pending_core_updates(self) -> int:
        return self.core_updates

    def pending_plugin_updates(self) -> int:
        return self.plugin_updates

    def pending_theme_updates(self) -> int:
        return self.theme_updates

    def active_cache_plugin(self) -> str:
        return self.cache_plugin or first_page_cache_plugin(self.plugins)

    def active_plugins(self) -> list[str]:
        return list(self.plugins)

    def dropins(self) -> list[str]:
        return [name for name in CACHE_DROPINS if name in self.dropin_files]

    def cache_constant_defined(self) -> bool:
        return self.wp_cache


def build_inventory(settings: Settings) -> SiteInventory | None:
    """
    Build the inventory configured in settings.

    A WordPress database URL wins over an inventory file. Returns None when
    neither is configured; the affected checks then report neutral scores.
    """
    if settings.wordpress_database_url:
        from siteaudit.inventory.wordpress import WordPressInventory

        logger.info("inventory_wordpress_database", prefix=settings.wordpress_table_prefix)
        return WordPressInventory.from_url(
            settings.wordpress_database_url,
            table_prefix=settings.wordpress_table_prefix,
            wp_cache=settings.wp_cache_constant,
            content_dir=settings.wordpress_content_dir,
        )

    if settings.inventory_file:
        logger.info("inventory_file", path=settings.inventory_file)
        inventory = StaticInventory.from_file(settings.inventory_file)
        if settings.wp_cache_constant and not inventory.wp_cache:
            inventory = inventory.model_copy(update={"wp_cache": True})
        return inventory

    return None
