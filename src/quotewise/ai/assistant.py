"""Assistant collaborators used by the session orchestrator.

:class:`AssistantBackend` is the seam the orchestrator depends on.
:class:`OpenAIAssistant` implements it over any OpenAI-compatible endpoint.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Mapping, Protocol, Sequence

from jsonschema import Draft7Validator, ValidationError

from ..core.inventory import to_decimal
from ..directives.engine import TurnContext
from ..session.errors import AnalysisPayloadError, CollaboratorError
from ..session.models import BillOfMaterials, BomLineItem, BuildingAnalysis
from . import prompts
from .client import RETRYABLE_ERRORS, AIClient

LOGGER = logging.getLogger(__name__)

__all__ = [
    "AssistantBackend",
    "OpenAIAssistant",
    "BUILDING_ANALYSIS_SCHEMA",
    "parse_building_analysis",
]

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(?P<body>.*)```$", re.IGNORECASE | re.DOTALL)

_LINE_ITEM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["sku", "quantity"],
    "properties": {
        "sku": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "quantity": {"type": "integer", "minimum": 1},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        "reasoning": {"type": "string"},
    },
}

BUILDING_ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["bom"],
    "properties": {
        "buildingSpec": {"type": "object"},
        "infrastructure": {"type": "object"},
        "bom": {
            "type": "object",
            "required": ["lineItems"],
            "properties": {
                "lineItems": {"type": "array", "items": _LINE_ITEM_SCHEMA},
                "costs": {
                    "type": "object",
                    "properties": {"total": {"type": ["number", "string", "null"]}},
                },
            },
        },
    },
}

_ANALYSIS_VALIDATOR = Draft7Validator(BUILDING_ANALYSIS_SCHEMA)


class AssistantBackend(Protocol):
    """Chat and building-analysis collaborator."""

    async def chat(
        self,
        message: str,
        context: TurnContext,
        history: Sequence[Mapping[str, str]],
    ) -> str:  # pragma: no cover - protocol stub
        ...

    async def analyze_building(self, description: str, context: TurnContext) -> BuildingAnalysis:  # pragma: no cover - protocol stub
        ...


class OpenAIAssistant:
    """Assistant backed by :class:`~quotewise.ai.client.AIClient`.

    Transport failures are wrapped in :class:`CollaboratorError` so the
    orchestrator sees a single failure type.
    """

    def __init__(
        self,
        client: AIClient,
        *,
        temperature: float = 0.7,
        max_tokens: int | None = prompts.CHAT_TOKEN_BUDGET,
    ) -> None:
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def chat(
        self,
        message: str,
        context: TurnContext,
        history: Sequence[Mapping[str, str]],
    ) -> str:
        messages = prompts.build_chat_messages(
            message,
            inventory=context.inventory,
            quote_lines=context.quote_lines,
            history=history,
        )
        try:
            return await self._client.complete_chat(
                messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except RETRYABLE_ERRORS as exc:
            raise CollaboratorError(message="Chat completion failed", details={"cause": type(exc).__name__}) from exc

    async def analyze_building(self, description: str, context: TurnContext) -> BuildingAnalysis:
        messages = prompts.build_analysis_messages(description, inventory=context.inventory)
        try:
            raw = await self._client.complete_chat(
                messages,
                temperature=0.2,
                max_tokens=prompts.ANALYSIS_TOKEN_BUDGET,
                json_mode=True,
            )
        except RETRYABLE_ERRORS as exc:
            raise CollaboratorError(message="Building analysis request failed", details={"cause": type(exc).__name__}) from exc
        return parse_building_analysis(raw)


def parse_building_analysis(payload: Mapping[str, Any] | str | bytes) -> BuildingAnalysis:
    """Validate and convert a building-analysis payload.

    Raises:
        AnalysisPayloadError: If the payload is not JSON or misses required fields.
    """

    mapping = _coerce_payload(payload)
    try:
        _ANALYSIS_VALIDATOR.validate(mapping)
    except ValidationError as error:
        raise AnalysisPayloadError(details={"reason": _format_validation_error(error)}) from error

    bom_payload = mapping["bom"]
    line_items = tuple(
        BomLineItem(
            sku=str(entry["sku"]).strip(),
            description=str(entry.get("description") or entry["sku"]),
            quantity=int(entry["quantity"]),
            confidence=float(entry.get("confidence", 0.0)),
            reasoning=str(entry.get("reasoning") or ""),
        )
        for entry in bom_payload.get("lineItems", [])
    )
    costs = bom_payload.get("costs") or {}
    total = to_decimal(costs.get("total"))
    if total is None and costs.get("total") not in (None, ""):
        LOGGER.debug("Ignoring non-numeric BOM total %r", costs.get("total"))
    return BuildingAnalysis(
        building_spec=dict(mapping.get("buildingSpec") or {}),
        infrastructure=dict(mapping.get("infrastructure") or {}),
        bom=BillOfMaterials(line_items=line_items, estimated_total=total),
    )


def _coerce_payload(payload: Mapping[str, Any] | str | bytes) -> Dict[str, Any]:
    if isinstance(payload, Mapping):
        return dict(payload)
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str) or not payload.strip():
        raise AnalysisPayloadError(details={"reason": "empty payload"})
    text = payload.strip()
    fence = _CODE_FENCE_RE.match(text)
    if fence:
        text = fence.group("body").strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AnalysisPayloadError(details={"reason": f"invalid JSON: {exc.msg}"}) from exc
    if not isinstance(parsed, Mapping):
        raise AnalysisPayloadError(details={"reason": "payload must decode to an object"})
    return dict(parsed)


def _format_validation_error(error: ValidationError) -> str:
    path = ".".join(str(part) for part in error.path)
    if path:
        return f"{path}: {error.message}"
    return error.message
