"""Core domain types: inventory lookup and quote state."""

from .inventory import InventoryLookup, build_inventory_lookup, item_field, item_id, load_inventory, to_decimal
from .quote import Quote, QuoteLine

__all__ = [
    "InventoryLookup",
    "build_inventory_lookup",
    "item_field",
    "item_id",
    "load_inventory",
    "to_decimal",
    "Quote",
    "QuoteLine",
]
