"""Tests for the OpenAI-backed assistant and analysis parsing."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import cast
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from quotewise.ai.assistant import OpenAIAssistant, parse_building_analysis
from quotewise.ai.client import AIClient
from quotewise.directives.engine import TurnContext
from quotewise.session.errors import AnalysisPayloadError, CollaboratorError

VALID_PAYLOAD = {
    "buildingSpec": {"type": "office", "floors": 4, "users": 100, "entrances": 2},
    "infrastructure": {"access_control": {"readers": 14, "controllers": 4}},
    "bom": {
        "lineItems": [
            {"sku": "ITEM-1", "description": "Card Reader", "quantity": 14, "confidence": 0.9, "reasoning": "per door"},
            {"sku": "ITEM-2", "quantity": 4},
        ],
        "costs": {"total": 8480.5},
    },
}


def _assistant(complete: AsyncMock) -> OpenAIAssistant:
    client = MagicMock(spec=AIClient)
    client.complete_chat = complete
    return OpenAIAssistant(cast(AIClient, client), temperature=0.4, max_tokens=123)


class TestParseBuildingAnalysis:
    """Schema validation of analysis payloads."""

    def test_valid_payload(self) -> None:
        analysis = parse_building_analysis(json.dumps(VALID_PAYLOAD))

        assert analysis.building_spec["floors"] == 4
        assert [item.sku for item in analysis.bom.line_items] == ["ITEM-1", "ITEM-2"]
        assert analysis.bom.line_items[1].description == "ITEM-2"
        assert analysis.bom.line_items[1].confidence == 0.0
        assert analysis.bom.estimated_total == Decimal("8480.5")

    def test_code_fenced_payload(self) -> None:
        fenced = "```json\n" + json.dumps(VALID_PAYLOAD) + "\n```"

        assert len(parse_building_analysis(fenced).bom) == 2

    def test_mapping_payload_and_missing_total(self) -> None:
        payload = {"bom": {"lineItems": []}}

        analysis = parse_building_analysis(payload)

        assert analysis.bom.is_empty
        assert analysis.bom.estimated_total is None
        assert analysis.building_spec == {}

    @pytest.mark.parametrize(
        "payload",
        [
            "",
            "not json",
            "[1, 2]",
            json.dumps({"buildingSpec": {}}),
            json.dumps({"bom": {"lineItems": [{"sku": "ITEM-1", "quantity": 0}]}}),
            json.dumps({"bom": {"lineItems": [{"sku": "ITEM-1", "quantity": 1, "confidence": 2}]}}),
            json.dumps({"bom": {"lineItems": [{"quantity": 1}]}}),
        ],
    )
    def test_invalid_payloads_raise(self, payload: str) -> None:
        with pytest.raises(AnalysisPayloadError) as excinfo:
            parse_building_analysis(payload)
        assert excinfo.value.details["reason"]

    def test_non_numeric_total_is_dropped(self) -> None:
        payload = {"bom": {"lineItems": [], "costs": {"total": "call us"}}}

        assert parse_building_analysis(payload).bom.estimated_total is None


class TestOpenAIAssistant:
    @pytest.mark.asyncio
    async def test_chat_builds_prompt_with_inventory_and_history(self) -> None:
        complete = AsyncMock(return_value="reply")
        assistant = _assistant(complete)
        context = TurnContext(inventory=[{"id": "ITEM-1", "name": "Card Reader", "stock": 3, "price": 10}])

        result = await assistant.chat("hi", context, [{"role": "assistant", "content": "earlier"}])

        assert result == "reply"
        messages = complete.await_args.args[0]
        assert messages[0]["role"] == "system"
        assert "ITEM-1 | Card Reader | 3 | 10" in messages[0]["content"]
        assert messages[1:] == [{"role": "assistant", "content": "earlier"}, {"role": "user", "content": "hi"}]
        assert complete.await_args.kwargs == {"temperature": 0.4, "max_tokens": 123}

    @pytest.mark.asyncio
    async def test_transport_errors_become_collaborator_errors(self) -> None:
        request = httpx.Request("POST", "http://local")
        assistant = _assistant(AsyncMock(side_effect=httpx.ReadTimeout("slow", request=request)))

        with pytest.raises(CollaboratorError) as excinfo:
            await assistant.chat("hi", TurnContext(), [])
        assert excinfo.value.details == {"cause": "ReadTimeout"}

    @pytest.mark.asyncio
    async def test_analysis_uses_json_mode(self) -> None:
        complete = AsyncMock(return_value=json.dumps(VALID_PAYLOAD))
        assistant = _assistant(complete)

        analysis = await assistant.analyze_building("4 floor office", TurnContext())

        assert len(analysis.bom) == 2
        assert complete.await_args.kwargs["json_mode"] is True
        assert json.loads(complete.await_args.args[0][1]["content"]) == {"description": "4 floor office"}

    @pytest.mark.asyncio
    async def test_analysis_payload_errors_propagate(self) -> None:
        assistant = _assistant(AsyncMock(return_value="{}"))

        with pytest.raises(AnalysisPayloadError):
            await assistant.analyze_building("4 floor office", TurnContext())
