"""In-memory quote state used as the quote-mutation collaborator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .inventory import item_field, item_id, to_decimal

LOGGER = logging.getLogger(__name__)

__all__ = ["QuoteLine", "Quote"]


@dataclass(slots=True)
class QuoteLine:
    """One SKU on the quote."""

    sku: str
    name: str
    quantity: int
    unit_price: Decimal | None = None
    stock: int | None = None

    @property
    def is_backorder(self) -> bool:
        return self.stock is not None and self.stock < self.quantity

    @property
    def line_total(self) -> Decimal | None:
        if self.unit_price is None:
            return None
        return self.unit_price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": None if self.unit_price is None else str(self.unit_price),
            "is_backorder": self.is_backorder,
        }


class Quote:
    """Ordered quote lines keyed by SKU.

    Adding a SKU already on the quote increases its quantity; removing an
    absent SKU is a no-op.
    """

    def __init__(self) -> None:
        self._lines: dict[str, QuoteLine] = {}

    def add_item(self, item: Any, quantity: int) -> QuoteLine:
        sku = item_id(item)
        if sku is None:
            raise ValueError("Inventory item has no id")
        if quantity < 1:
            raise ValueError(f"Quantity must be positive, got {quantity}")
        line = self._lines.get(sku)
        if line is None:
            stock = item_field(item, "stock")
            line = QuoteLine(
                sku=sku,
                name=str(item_field(item, "name", sku) or sku),
                quantity=quantity,
                unit_price=to_decimal(item_field(item, "price")),
                stock=int(stock) if isinstance(stock, (int, float)) else None,
            )
            self._lines[sku] = line
        else:
            line.quantity += quantity
        LOGGER.info("Quote: %s x%d (line total quantity %d)", sku, quantity, line.quantity)
        return line

    def remove_item(self, sku: str) -> bool:
        removed = self._lines.pop(sku, None) is not None
        if removed:
            LOGGER.info("Quote: removed %s", sku)
        return removed

    def clear(self) -> None:
        self._lines.clear()

    def get(self, sku: str) -> QuoteLine | None:
        return self._lines.get(sku)

    @property
    def lines(self) -> list[QuoteLine]:
        return list(self._lines.values())

    @property
    def total(self) -> Decimal:
        total = Decimal("0")
        for line in self._lines.values():
            if line.line_total is not None:
                total += line.line_total
        return total

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, sku: object) -> bool:
        return sku in self._lines
