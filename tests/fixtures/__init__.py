"""Shared test fixtures: fetched pages, PSI documents and in-memory fakes."""

from tests.fixtures.fakes import FailingInventory, FakeRedis
from tests.fixtures.pages import failed_page, html_document, image_tags, make_page
from tests.fixtures.psi import FAST_LAB, psi_response

__all__ = [
    # Pages
    "make_page",
    "failed_page",
    "html_document",
    "image_tags",
    # PSI
    "psi_response",
    "FAST_LAB",
    # Fakes
    "FakeRedis",
    "FailingInventory",
]
