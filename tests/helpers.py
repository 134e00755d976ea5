"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Sequence

from quotewise.directives.engine import TurnContext
from quotewise.session.models import BillOfMaterials, BomLineItem, BuildingAnalysis

SAMPLE_INVENTORY: list[dict[str, Any]] = [
    {"id": "ITEM-1", "name": "Card Reader", "stock": 40, "price": 120.0},
    {"id": "ITEM-2", "name": "Door Controller", "stock": 2, "price": 450.0},
    {"id": "CAM-100", "name": "Dome Camera", "stock": 12, "price": 210.5},
]


class RecordingQuote:
    """Quote collaborator that records callback invocations in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def add(self, item: Any, quantity: int) -> None:
        self.calls.append(("add", item["id"], quantity))

    def remove(self, sku: str) -> None:
        self.calls.append(("remove", sku))

    def context(self, inventory: Sequence[Mapping[str, Any]] | None = None) -> TurnContext:
        return TurnContext(
            inventory=list(SAMPLE_INVENTORY if inventory is None else inventory),
            on_add_to_quote=self.add,
            on_remove_from_quote=self.remove,
        )


class FakeAssistant:
    """Assistant backend returning canned replies.

    ``reply`` and ``analysis`` may be an exception instance, which is raised
    instead. Set ``delay`` to make calls suspend for that many seconds.
    """

    def __init__(
        self,
        reply: Any = "Sure thing.",
        analysis: Any = None,
        *,
        delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.analysis = analysis if analysis is not None else make_analysis()
        self.delay = delay
        self.chat_calls: list[tuple[str, list[Mapping[str, str]]]] = []
        self.analysis_calls: list[str] = []

    async def chat(self, message: str, context: TurnContext, history: Sequence[Mapping[str, str]]) -> str:
        self.chat_calls.append((message, list(history)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply

    async def analyze_building(self, description: str, context: TurnContext) -> BuildingAnalysis:
        self.analysis_calls.append(description)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.analysis, BaseException):
            raise self.analysis
        return self.analysis


def make_analysis(*line_items: BomLineItem, total: Any = None) -> BuildingAnalysis:
    """Return a building analysis with ``line_items`` (two defaults when omitted)."""

    if not line_items:
        line_items = (
            BomLineItem(sku="ITEM-1", description="Card Reader", quantity=12, confidence=0.9, reasoning="3 per floor"),
            BomLineItem(sku="ITEM-2", description="Door Controller", quantity=4, confidence=0.8),
        )
    return BuildingAnalysis(
        building_spec={"type": "office", "floors": 4, "users": 100, "entrances": 2},
        infrastructure={"access_control": {"readers": 12, "controllers": 4}},
        bom=BillOfMaterials(line_items=tuple(line_items), estimated_total=total),
    )


def empty_analysis() -> BuildingAnalysis:
    return BuildingAnalysis(building_spec={}, infrastructure={}, bom=BillOfMaterials())
