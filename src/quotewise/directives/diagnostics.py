"""Non-fatal diagnostics for directives that were dropped during a turn."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

LOGGER = logging.getLogger(__name__)

__all__ = [
    "DiagnosticReason",
    "DirectiveDiagnostic",
    "DiagnosticSink",
    "InMemoryDiagnosticSink",
    "LoggingDiagnosticSink",
    "report",
]


class DiagnosticReason:
    """Reason codes attached to dropped directives."""

    INVALID_SKU = "invalid_sku"
    INVALID_QUANTITY = "invalid_quantity"
    LOOKUP_MISS = "lookup_miss"


@dataclass(frozen=True, slots=True)
class DirectiveDiagnostic:
    """Why a single directive produced no side effect."""

    reason: str
    kind: str
    sku: str
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"reason": self.reason, "kind": self.kind, "sku": self.sku}
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class DiagnosticSink(Protocol):
    """Receiver for directive diagnostics."""

    def record(self, diagnostic: DirectiveDiagnostic) -> None:  # pragma: no cover - protocol stub
        ...


class InMemoryDiagnosticSink:
    """Ring buffer of recent diagnostics for inspection and tests."""

    def __init__(self, capacity: int = 200) -> None:
        self._capacity = max(10, capacity)
        self._buffer: deque[DirectiveDiagnostic] = deque(maxlen=self._capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, diagnostic: DirectiveDiagnostic) -> None:
        self._buffer.append(diagnostic)

    def tail(self, limit: int | None = None) -> list[DirectiveDiagnostic]:
        events = list(self._buffer)
        if limit is None or limit >= len(events):
            return events
        return events[-limit:]

    def reasons(self) -> list[str]:
        return [item.reason for item in self._buffer]

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


class LoggingDiagnosticSink:
    """Sink that only writes diagnostics to the module logger."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def record(self, diagnostic: DirectiveDiagnostic) -> None:
        LOGGER.log(
            self._level,
            "Dropped %s directive for SKU %r (%s)",
            diagnostic.kind,
            diagnostic.sku,
            diagnostic.reason,
        )


def report(sink: DiagnosticSink | None, diagnostic: DirectiveDiagnostic) -> None:
    """Forward ``diagnostic`` to ``sink``; sink failures never reach the turn."""

    LOGGER.debug("Directive diagnostic: %s", diagnostic.to_dict())
    if sink is None:
        return
    try:
        sink.record(diagnostic)
    except Exception:  # pragma: no cover - sinks must not break the turn
        LOGGER.debug("Diagnostic sink %s failed", sink, exc_info=True)
