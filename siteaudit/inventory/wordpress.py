"""WordPress database inventory using SQLAlchemy.

Reads the standard ``options``, ``posts`` and ``postmeta`` tables. Update
counts and active plugins come from PHP-serialized option values, which
are inspected with patterns rather than unserialized.
"""

import re
from pathlib import Path

import structlog
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from siteaudit.exceptions import InventoryError, ValidationError
from siteaudit.inventory.base import CACHE_DROPINS, first_page_cache_plugin

logger = structlog.get_logger(__name__)

# WordPress 6.6+ writes on/auto/auto-on in addition to the legacy "yes"
AUTOLOAD_VALUES = ("yes", "on", "auto-on", "auto")

_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]+$")
_RESPONSE_ARRAY_RE = re.compile(r's:8:"response";a:(\d+):')
_CORE_UPGRADE_RE = re.compile(r's:8:"response";s:7:"upgrade";')
_SERIALIZED_STRING_RE = re.compile(r's:\d+:"([^"]*)";')


class WordPressInventory:
    """Inventory backed by a WordPress database."""

    def __init__(
        self,
        engine: Engine,
        table_prefix: str = "wp_",
        wp_cache: bool = False,
        content_dir: str | Path | None = None,
    ):
        if not _PREFIX_RE.match(table_prefix):
            raise ValidationError(f"Invalid table prefix: {table_prefix!r}", field="table_prefix")
        self.engine = engine
        self.prefix = table_prefix
        self.wp_cache = wp_cache
        self.content_dir = Path(content_dir) if content_dir else None

    @classmethod
    def from_url(
        cls,
        url: str,
        table_prefix: str = "wp_",
        wp_cache: bool = False,
        content_dir: str | Path | None = None,
    ) -> "WordPressInventory":
        return cls(
            create_engine(url, pool_pre_ping=True),
            table_prefix=table_prefix,
            wp_cache=wp_cache,
            content_dir=content_dir,
        )

    @property
    def _options(self) -> str:
        return f"{self.prefix}options"

    def _scalars(self, sql: str, **params) -> list:
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(text(sql), params).scalars())
        except SQLAlchemyError as e:
            logger.warning("inventory_query_failed", error=str(e))
            raise InventoryError("wordpress", str(e)) from e

    def _option(self, name: str) -> str:
        rows = self._scalars(
            f"SELECT option_value FROM {self._options} WHERE option_name = :name",
            name=name,
        )
        return str(rows[0]) if rows and rows[0] is not None else ""

    def autoload_bytes(self) -> int:
        placeholders = ", ".join(f":a{i}" for i in range(len(AUTOLOAD_VALUES)))
        values = self._scalars(
            f"SELECT option_value FROM {self._options} WHERE autoload IN ({placeholders})",
            **{f"a{i}": v for i, v in enumerate(AUTOLOAD_VALUES)},
        )
        return sum(len(str(v or "").encode("utf-8")) for v in values)

    def recent_post_meta_counts(self, limit: int = 20) -> list[int]:
        posts = f"{self.prefix}posts"
        postmeta = f"{self.prefix}postmeta"
        counts = self._scalars(
            f"SELECT (SELECT COUNT(*) FROM {postmeta} m WHERE m.post_id = p.ID) "
            f"FROM {posts} p WHERE p.post_status = 'publish' AND p.post_type = 'post' "
            "ORDER BY p.post_date_gmt DESC LIMIT :limit",
            limit=limit,
        )
        return [int(c) for c in counts]

    def expired_transient_count(self, now: int) -> int:
        values = self._scalars(
            f"SELECT option_value FROM {self._options} WHERE option_name LIKE :pattern ESCAPE '!'",
            pattern="!_transient!_timeout!_%",
        )
        expired = 0
        for value in values:
            try:
                if int(value) < now:
                    expired += 1
            except (TypeError, ValueError):
                continue
        return expired

    def pending_core_updates(self) -> int:
        return len(_CORE_UPGRADE_RE.findall(self._option("_site_transient_update_core")))

    def pending_plugin_updates(self) -> int:
        return self._response_count("_site_transient_update_plugins")

    def pending_theme_updates(self) -> int:
        return self._response_count("_site_transient_update_themes")

    def _response_count(self, option_name: str) -> int:
        match = _RESPONSE_ARRAY_RE.search(self._option(option_name))
        return int(match.group(1)) if match else 0

    def active_plugins(self) -> list[str]:
        return _SERIALIZED_STRING_RE.findall(self._option("active_plugins"))

    def active_cache_plugin(self) -> str:
        return first_page_cache_plugin(self.active_plugins())

    def dropins(self) -> list[str]:
        """Drop-ins found in the configured wp-content directory; none when it is unset."""
        if self.content_dir is None:
            return []
        return [name for name in CACHE_DROPINS if (self.content_dir / name).is_file()]

    def cache_constant_defined(self) -> bool:
        return self.wp_cache
