"""Read-only inventory lookup helpers."""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence

__all__ = ["InventoryLookup", "item_field", "item_id", "to_decimal", "build_inventory_lookup", "load_inventory"]

InventoryLookup = Callable[[str], Any]


def item_field(item: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an attribute-style item."""

    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def item_id(item: Any) -> str | None:
    """Return the catalog id for a mapping-like or attribute-style item."""

    value = item_field(item, "id")
    if value is None:
        return None
    return str(value)


def build_inventory_lookup(inventory: Iterable[Any] | None) -> InventoryLookup:
    """Index ``inventory`` by id and return a lookup callable.

    The first item carrying a given id wins, matching a linear ``find``.
    """

    index: dict[str, Any] = {}
    for item in inventory or ():
        key = item_id(item)
        if key is not None and key not in index:
            index[key] = item
    return index.get


def load_inventory(path: str | Path) -> list[dict[str, Any]]:
    """Load an inventory list from a JSON file.

    Accepts either a bare list or an object with an ``inventory`` list.
    """

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, Mapping):
        raw = raw.get("inventory", [])
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        raise ValueError(f"Inventory file {path} must contain a list of items")
    items: list[dict[str, Any]] = []
    for entry in raw:
        if isinstance(entry, Mapping) and entry.get("id") is not None:
            items.append(dict(entry))
    return items


def to_decimal(value: Any) -> Decimal | None:
    """Convert a price-like value to :class:`Decimal`; blanks and junk give ``None``."""

    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
