"""Tests for the database and update checks."""

import json

import pytest

from siteaudit.checks.database import (
    check_autoload_size,
    check_postmeta_bloat,
    check_transients,
)
from siteaudit.checks.updates import (
    check_updates_core,
    check_updates_plugins,
    check_updates_themes,
)
from siteaudit.config import Settings
from siteaudit.exceptions import ConfigurationError
from siteaudit.inventory.base import SiteInventory, StaticInventory, build_inventory
from tests.fixtures import FailingInventory

INVENTORY_CHECKS = [
    check_autoload_size,
    check_postmeta_bloat,
    check_transients,
    check_updates_core,
    check_updates_plugins,
    check_updates_themes,
]


class TestAutoloadSize:
    """Tests for the autoloaded options check."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, 100),
            (128 * 1024, 100),
            (128 * 1024 + 1, 80),
            (512 * 1024 + 1, 60),
            (1024 * 1024 + 1, 40),
            (50 * 1024 * 1024, 40),
        ],
    )
    def test_bands(self, size: int, expected: int) -> None:
        result = check_autoload_size(StaticInventory(autoload_size_bytes=size))

        assert result.score == expected
        assert result.meta.bytes == size

    def test_hint_in_kilobytes(self) -> None:
        result = check_autoload_size(StaticInventory(autoload_size_bytes=300 * 1024))

        assert result.meta.hint() == "Autoload size: 300 KB"


class TestPostmetaBloat:
    """Tests for the postmeta bloat check."""

    def test_average_rounded_to_one_decimal(self) -> None:
        result = check_postmeta_bloat(StaticInventory(post_meta_counts=[10, 20, 21]))

        assert result.meta.avg_meta == 17.0
        assert result.score == 100

    def test_bands(self) -> None:
        assert check_postmeta_bloat(StaticInventory(post_meta_counts=[41])).score == 80
        assert check_postmeta_bloat(StaticInventory(post_meta_counts=[80])).score == 80
        assert check_postmeta_bloat(StaticInventory(post_meta_counts=[81])).score == 60
        assert check_postmeta_bloat(StaticInventory(post_meta_counts=[200, 100])).score == 40

    def test_no_posts(self) -> None:
        result = check_postmeta_bloat(StaticInventory())

        assert result.score == 100
        assert result.meta.avg_meta == 0.0

    def test_only_newest_twenty_posts_sampled(self) -> None:
        counts = [10] * 20 + [1000] * 5

        result = check_postmeta_bloat(StaticInventory(post_meta_counts=counts))

        assert result.meta.avg_meta == 10.0


class TestTransients:
    """Tests for the expired transients check."""

    @pytest.mark.parametrize(
        "expired,expected",
        [(0, 100), (20, 100), (21, 80), (201, 60), (1001, 40)],
    )
    def test_bands(self, expired: int, expected: int) -> None:
        result = check_transients(StaticInventory(expired_transients=expired), now=1_700_000_000)

        assert result.score == expected
        assert result.meta.expired == expired


class TestUpdates:
    """Tests for pending update checks."""

    def test_core(self) -> None:
        assert check_updates_core(StaticInventory()).score == 100
        assert check_updates_core(StaticInventory(core_updates=1)).score == 60
        assert check_updates_core(StaticInventory(core_updates=3)).score == 60

    @pytest.mark.parametrize(
        "count,expected",
        [(0, 100), (1, 80), (3, 80), (4, 60), (9, 40), (16, 20)],
    )
    def test_plugins(self, count: int, expected: int) -> None:
        result = check_updates_plugins(StaticInventory(plugin_updates=count))

        assert result.score == expected
        assert result.meta.count == count

    @pytest.mark.parametrize(
        "count,expected",
        [(0, 100), (1, 80), (2, 80), (3, 60), (6, 40), (11, 20)],
    )
    def test_themes(self, count: int, expected: int) -> None:
        assert check_updates_themes(StaticInventory(theme_updates=count)).score == expected

    def test_hint(self) -> None:
        result = check_updates_plugins(StaticInventory(plugin_updates=4))

        assert result.meta.hint() == "Updates available: 4"


class TestMissingInventory:
    """Inventory-backed checks degrade to a neutral 50."""

    @pytest.mark.parametrize("check", INVENTORY_CHECKS)
    def test_no_inventory(self, check) -> None:
        result = check(None)

        assert result.score == 50
        assert result.meta.error == "No site inventory configured"

    @pytest.mark.parametrize("check", INVENTORY_CHECKS)
    def test_failing_inventory(self, check) -> None:
        result = check(FailingInventory())

        assert result.score == 50
        assert result.meta.error == "wordpress: database is locked"


class TestStaticInventory:
    """Tests for inventory facts supplied as JSON."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(StaticInventory(), SiteInventory)

    def test_from_file(self, tmp_path) -> None:
        path = tmp_path / "inventory.json"
        path.write_text(
            json.dumps({"autoload_size_bytes": 2048, "plugin_updates": 2, "cache_plugin": "WP Rocket"})
        )

        inventory = StaticInventory.from_file(path)

        assert inventory.autoload_bytes() == 2048
        assert inventory.pending_plugin_updates() == 2
        assert inventory.active_cache_plugin() == "WP Rocket"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            StaticInventory.from_file(tmp_path / "missing.json")

    def test_invalid_file(self, tmp_path) -> None:
        path = tmp_path / "inventory.json"
        path.write_text(json.dumps({"plugin_updates": -1}))

        with pytest.raises(ConfigurationError, match="Invalid inventory file"):
            StaticInventory.from_file(path)

    def test_cache_plugin_from_plugin_list(self) -> None:
        inventory = StaticInventory(plugins=["akismet/akismet.php", "litespeed-cache/litespeed-cache.php"])

        assert inventory.active_cache_plugin() == "LiteSpeed Cache"
        assert inventory.active_plugins() == [
            "akismet/akismet.php",
            "litespeed-cache/litespeed-cache.php",
        ]

    def test_explicit_cache_plugin_wins(self) -> None:
        inventory = StaticInventory(cache_plugin="Custom Edge Cache", plugins=["wp-rocket/wp-rocket.php"])

        assert inventory.active_cache_plugin() == "Custom Edge Cache"

    def test_dropins_limited_to_cache_dropins(self) -> None:
        inventory = StaticInventory(dropin_files=["db.php", "object-cache.php", "advanced-cache.php"])

        assert inventory.dropins() == ["advanced-cache.php", "object-cache.php"]


class TestBuildInventory:
    """Tests for choosing the configured inventory backend."""

    def test_none_configured(self, settings: Settings) -> None:
        assert build_inventory(settings) is None

    def test_inventory_file(self, settings: Settings, tmp_path) -> None:
        path = tmp_path / "inventory.json"
        path.write_text(json.dumps({"theme_updates": 1}))
        settings = settings.model_copy(update={"inventory_file": str(path), "wp_cache_constant": True})

        inventory = build_inventory(settings)

        assert isinstance(inventory, StaticInventory)
        assert inventory.pending_theme_updates() == 1
        assert inventory.cache_constant_defined() is True

    def test_database_url_wins(self, settings: Settings, tmp_path) -> None:
        from siteaudit.inventory.wordpress import WordPressInventory

        settings = settings.model_copy(
            update={
                "wordpress_database_url": "sqlite://",
                "inventory_file": str(tmp_path / "ignored.json"),
            }
        )

        assert isinstance(build_inventory(settings), WordPressInventory)

    def test_database_inventory_gets_content_dir(self, settings: Settings, tmp_path) -> None:
        settings = settings.model_copy(
            update={"wordpress_database_url": "sqlite://", "wordpress_content_dir": str(tmp_path)}
        )

        inventory = build_inventory(settings)

        assert inventory.content_dir == tmp_path
