"""Session orchestration: state machine, turn handling and events."""

from .errors import (
    AnalysisPayloadError,
    CollaboratorError,
    ErrorCode,
    InvalidInputError,
    NoPendingBomError,
    SessionError,
    TurnInProgressError,
)
from .events import EventBus
from .models import AnalysisMode, BillOfMaterials, BomLineItem, BuildingAnalysis, ChatMessage, SessionState
from .orchestrator import APOLOGY_MESSAGE, QuoteSession, render_analysis_message

__all__ = [
    "AnalysisMode",
    "AnalysisPayloadError",
    "APOLOGY_MESSAGE",
    "BillOfMaterials",
    "BomLineItem",
    "BuildingAnalysis",
    "ChatMessage",
    "CollaboratorError",
    "ErrorCode",
    "EventBus",
    "InvalidInputError",
    "NoPendingBomError",
    "QuoteSession",
    "SessionError",
    "SessionState",
    "TurnInProgressError",
    "render_analysis_message",
]
