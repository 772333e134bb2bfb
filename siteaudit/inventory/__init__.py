"""Site inventory backends for the database and core checks."""

from siteaudit.inventory.base import SiteInventory, StaticInventory, build_inventory

__all__ = [
    "SiteInventory",
    "StaticInventory",
    "build_inventory",
]
