"""Error types raised at the session and collaborator boundaries.

Directive-level problems never raise; they are dropped and reported to the
diagnostics sink. Only the errors below cross a module boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ErrorCode:
    """Constants for machine-readable error codes."""

    TURN_IN_PROGRESS = "turn_in_progress"
    INVALID_INPUT = "invalid_input"
    COLLABORATOR_FAILURE = "collaborator_failure"
    ANALYSIS_PAYLOAD = "analysis_payload_invalid"
    NO_PENDING_BOM = "no_pending_bom"


@dataclass
class SessionError(Exception):
    """Base class for session errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable description (never shown to chat users verbatim).
        details: Additional structured information.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class TurnInProgressError(SessionError):
    """Raised when a message arrives while another turn is still running."""

    error_code: str = field(default=ErrorCode.TURN_IN_PROGRESS)
    message: str = field(default="A turn is already in progress for this session")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class InvalidInputError(SessionError):
    """Raised when user input is rejected before a turn starts."""

    error_code: str = field(default=ErrorCode.INVALID_INPUT)
    message: str = field(default="Message rejected")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class NoPendingBomError(SessionError):
    """Raised when a BOM action is requested with nothing pending."""

    error_code: str = field(default=ErrorCode.NO_PENDING_BOM)
    message: str = field(default="There is no bill of materials awaiting review")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class CollaboratorError(SessionError):
    """Raised by assistant backends when the upstream call fails."""

    error_code: str = field(default=ErrorCode.COLLABORATOR_FAILURE)
    message: str = field(default="Assistant request failed")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class AnalysisPayloadError(CollaboratorError):
    """Raised when a building-analysis payload does not match its schema."""

    error_code: str = field(default=ErrorCode.ANALYSIS_PAYLOAD)
    message: str = field(default="Building analysis payload is invalid")
    details: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "ErrorCode",
    "SessionError",
    "TurnInProgressError",
    "InvalidInputError",
    "NoPendingBomError",
    "CollaboratorError",
    "AnalysisPayloadError",
]
