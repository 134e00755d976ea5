"""Session state, chat history and bill-of-materials models.

These dataclasses are owned by :class:`~quotewise.session.orchestrator.QuoteSession`
and are mutated only from its turn sequence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Literal, Mapping


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


ChatRole = Literal["user", "assistant"]


class AnalysisMode(Enum):
    """Which flow the session is in.

    Values:
        CHAT: Regular conversation; replies run through the directive engine.
        BUILDING_ANALYSIS: A building-requirements analysis is in flight.
        BOM_PREVIEW: An analysis produced a bill of materials awaiting review.
    """

    CHAT = "chat"
    BUILDING_ANALYSIS = "building"
    BOM_PREVIEW = "bom"


@dataclass(slots=True)
class ChatMessage:
    """Represents a row inside the chat history list."""

    role: ChatRole
    content: str
    created_at: datetime = field(default_factory=_utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "metadata": dict(self.metadata),
        }

    def as_prompt_message(self) -> Dict[str, str]:
        """Return the OpenAI-style ``{role, content}`` payload."""

        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class BomLineItem:
    """A recommended component with quantity and confidence."""

    sku: str
    description: str
    quantity: int
    confidence: float = 0.0
    reasoning: str = ""

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.confidence) <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass(frozen=True, slots=True)
class BillOfMaterials:
    """Itemized recommendation produced by a building analysis."""

    line_items: tuple[BomLineItem, ...] = ()
    estimated_total: Decimal | None = None

    @property
    def is_empty(self) -> bool:
        return not self.line_items

    def __len__(self) -> int:
        return len(self.line_items)


@dataclass(frozen=True, slots=True)
class BuildingAnalysis:
    """Structured result of analyzing a building description."""

    building_spec: Mapping[str, Any]
    infrastructure: Mapping[str, Any]
    bom: BillOfMaterials


@dataclass(slots=True)
class SessionState:
    """Everything a conversation carries between turns."""

    analysis_mode: AnalysisMode = AnalysisMode.CHAT
    history: list[ChatMessage] = field(default_factory=list)
    pending_bom: BillOfMaterials | None = None

    def reset_to_chat(self) -> None:
        self.analysis_mode = AnalysisMode.CHAT
        self.pending_bom = None


__all__ = [
    "ChatRole",
    "AnalysisMode",
    "ChatMessage",
    "BomLineItem",
    "BillOfMaterials",
    "BuildingAnalysis",
    "SessionState",
]
