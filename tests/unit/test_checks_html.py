"""Tests for checks that read the fetched page: caching headers, assets, images."""

from siteaudit.checks.assets import check_assets_counts, check_render_blocking
from siteaudit.checks.caching import check_cache_present, check_compression
from siteaudit.checks.images import check_images_dims_and_size
from siteaudit.checks.models import AssetCountsMeta, ImagesMeta
from siteaudit.inventory.base import StaticInventory
from tests.fixtures import FailingInventory, failed_page, html_document, image_tags, make_page


class TestCachePresent:
    """Tests for page cache detection."""

    def test_no_signals_scores_zero(self) -> None:
        result = check_cache_present(make_page("<html></html>"), None)

        assert result.score == 0
        assert result.meta.cached is False

    def test_cache_status_hit(self) -> None:
        page = make_page(headers={"X-Cache": "HIT from edge"})

        assert check_cache_present(page, None).score == 100

    def test_first_non_empty_status_header_decides(self) -> None:
        page = make_page(headers={"X-Cache": "MISS", "CF-Cache-Status": "HIT"})

        assert check_cache_present(page, None).score == 0

    def test_positive_age(self) -> None:
        page = make_page(headers={"Age": "42"})

        assert check_cache_present(page, None).score == 100

    def test_zero_or_garbage_age(self) -> None:
        assert check_cache_present(make_page(headers={"Age": "0"}), None).score == 0
        assert check_cache_present(make_page(headers={"Age": "soon"}), None).score == 0

    def test_cache_plugin_counts(self) -> None:
        inventory = StaticInventory(cache_plugin="WP Rocket")

        result = check_cache_present(make_page(), inventory)

        assert result.score == 100
        assert result.meta.plugin == "WP Rocket"
        assert result.meta.hint() == "Cache detected: yes (WP Rocket)"

    def test_cache_constant_counts(self) -> None:
        result = check_cache_present(make_page(), StaticInventory(wp_cache=True))

        assert result.score == 100

    def test_inventory_failure_keeps_header_signal(self) -> None:
        page = make_page(headers={"X-Cache": "HIT"})

        result = check_cache_present(page, FailingInventory())

        assert result.score == 100
        assert "database is locked" in result.meta.error

    def test_failed_fetch_without_inventory(self) -> None:
        assert check_cache_present(failed_page(), None).score == 0


class TestCompression:
    """Tests for the compression check."""

    def test_gzip(self) -> None:
        result = check_compression(make_page(headers={"Content-Encoding": "gzip"}))

        assert result.score == 100
        assert result.meta.encoding == "gzip"

    def test_brotli(self) -> None:
        assert check_compression(make_page(headers={"Content-Encoding": "br"})).score == 100

    def test_identity(self) -> None:
        assert check_compression(make_page(headers={"Content-Encoding": "identity"})).score == 0

    def test_missing_header(self) -> None:
        result = check_compression(make_page())

        assert result.score == 0
        assert result.meta.hint() == "Encoding: n/a"


class TestAssetCounts:
    """Tests for CSS/JS request counting."""

    @staticmethod
    def _page(css: int, js: int, inline_js: int = 0):
        head = "".join(f'<link rel="stylesheet" href="/c{i}.css">' for i in range(css))
        body = "".join(f'<script src="/j{i}.js"></script>' for i in range(js))
        body += "<script>var x = 1;</script>" * inline_js
        return make_page(html_document(head, body))

    def test_within_allowance(self) -> None:
        result = check_assets_counts(self._page(css=3, js=5))

        assert result.score == 100
        assert result.meta == AssetCountsMeta(css=3, js=5)

    def test_each_extra_file_costs_five(self) -> None:
        assert check_assets_counts(self._page(css=5, js=5)).score == 90
        assert check_assets_counts(self._page(css=3, js=8)).score == 85
        assert check_assets_counts(self._page(css=4, js=6)).score == 90

    def test_inline_scripts_not_counted(self) -> None:
        result = check_assets_counts(self._page(css=0, js=0, inline_js=10))

        assert result.meta.js == 0
        assert result.score == 100

    def test_floor_at_zero(self) -> None:
        assert check_assets_counts(self._page(css=30, js=30)).score == 0

    def test_non_stylesheet_links_ignored(self) -> None:
        head = '<link rel="icon" href="/favicon.ico"><link rel="preload" href="/a.css">'

        result = check_assets_counts(make_page(html_document(head)))

        assert result.meta.css == 0

    def test_failed_fetch_scores_unknown(self) -> None:
        result = check_assets_counts(failed_page("Request timed out after 15.0s"))

        assert result.score == 50
        assert result.meta.error == "Request timed out after 15.0s"

    def test_http_error_status_scores_unknown(self) -> None:
        result = check_assets_counts(make_page("oops", status_code=500))

        assert result.score == 50
        assert result.meta.error == "HTTP 500"


class TestRenderBlocking:
    """Tests for render-blocking resource detection."""

    def test_clean_head(self) -> None:
        head = (
            '<link rel="stylesheet" href="/print.css" media="print">'
            '<script src="/a.js" defer></script>'
            '<script src="/b.js" async></script>'
            "<script>inline()</script>"
        )

        result = check_render_blocking(make_page(html_document(head)))

        assert result.score == 100
        assert result.meta.blocking_css == 0
        assert result.meta.blocking_js == 0

    def test_each_blocking_resource_costs_ten(self) -> None:
        head = (
            '<link rel="stylesheet" href="/a.css">'
            '<link rel="stylesheet" href="/b.css" media="all">'
            '<script src="/c.js"></script>'
        )

        result = check_render_blocking(make_page(html_document(head)))

        assert result.score == 70
        assert result.meta.blocking_css == 2
        assert result.meta.blocking_js == 1

    def test_body_resources_do_not_block(self) -> None:
        body = '<link rel="stylesheet" href="/late.css"><script src="/late.js"></script>'

        result = check_render_blocking(make_page(html_document(body=body)))

        assert result.score == 100

    def test_floor_at_zero(self) -> None:
        head = '<script src="/x.js"></script>' * 12

        assert check_render_blocking(make_page(html_document(head))).score == 0

    def test_failed_fetch_scores_unknown(self) -> None:
        assert check_render_blocking(failed_page()).score == 50


class TestImages:
    """Tests for image dimension and format checks."""

    def test_missing_dims_and_no_nextgen(self) -> None:
        page = make_page(html_document(body=image_tags(total=10, missing_dims=4)))

        result = check_images_dims_and_size(page)

        assert result.score == 75
        assert result.meta == ImagesMeta(total=10, missing_dims=4, nextgen=0)

    def test_nextgen_avoids_flat_penalty(self) -> None:
        page = make_page(html_document(body=image_tags(total=10, missing_dims=4, nextgen=1)))

        assert check_images_dims_and_size(page).score == 84

    def test_missing_dims_penalty_capped(self) -> None:
        page = make_page(html_document(body=image_tags(total=30, missing_dims=30, nextgen=30)))

        assert check_images_dims_and_size(page).score == 60

    def test_no_images_is_perfect(self) -> None:
        result = check_images_dims_and_size(make_page(html_document(body="<p>text</p>")))

        assert result.score == 100
        assert result.meta.total == 0

    def test_non_numeric_dimensions_count_as_missing(self) -> None:
        body = '<img src="/a.webp" width="auto" height="80">'

        result = check_images_dims_and_size(make_page(html_document(body=body)))

        assert result.meta.missing_dims == 1
        assert result.score == 96

    def test_lazy_source_and_srcset_detected(self) -> None:
        body = (
            '<img data-src="/lazy.AVIF?v=2" width="1" height="1">'
            '<img src="/a.jpg" srcset="/a-400.webp 400w, /a-800.jpg 800w" width="1" height="1">'
        )

        result = check_images_dims_and_size(make_page(html_document(body=body)))

        assert result.meta.nextgen == 2
        assert result.score == 100

    def test_failed_fetch_scores_unknown(self) -> None:
        result = check_images_dims_and_size(failed_page())

        assert result.score == 50
        assert result.meta.error
