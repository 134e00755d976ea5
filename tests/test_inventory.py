"""Tests for inventory loading and lookup."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest

from quotewise.core.inventory import build_inventory_lookup, item_field, item_id, load_inventory, to_decimal


def test_item_id_supports_mappings_and_attributes() -> None:
    assert item_id({"id": "ITEM-1"}) == "ITEM-1"
    assert item_id(SimpleNamespace(id=42)) == "42"
    assert item_id({"name": "no id"}) is None


def test_item_field_reads_mappings_and_attributes() -> None:
    assert item_field({"stock": 4}, "stock") == 4
    assert item_field(SimpleNamespace(price=9.5), "price") == 9.5
    assert item_field({}, "name", "fallback") == "fallback"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(120.0, Decimal("120.0")), ("19.99", Decimal("19.99")), (None, None), ("", None), ("TBD", None)],
)
def test_to_decimal(value: object, expected: Decimal | None) -> None:
    assert to_decimal(value) == expected


def test_lookup_returns_none_for_misses(inventory: list[dict]) -> None:
    lookup = build_inventory_lookup(inventory)

    assert lookup("ITEM-2") is inventory[1]
    assert lookup("MISSING") is None


def test_lookup_tolerates_missing_inventory() -> None:
    assert build_inventory_lookup(None)("ITEM-1") is None


def test_load_inventory_accepts_list_and_wrapped_payloads(tmp_path: Path) -> None:
    items = [{"id": "A-1", "name": "Alpha"}, {"name": "skipped"}, "junk"]
    bare = tmp_path / "bare.json"
    bare.write_text(json.dumps(items), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"inventory": items}), encoding="utf-8")

    assert load_inventory(bare) == [{"id": "A-1", "name": "Alpha"}]
    assert load_inventory(wrapped) == [{"id": "A-1", "name": "Alpha"}]


def test_load_inventory_rejects_non_list(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"inventory": "nope"}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_inventory(path)
