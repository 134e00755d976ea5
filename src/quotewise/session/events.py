"""Session event bus used to notify UI and history observers.

Each :class:`~quotewise.session.orchestrator.QuoteSession` owns its own bus;
there are no module-level listener registries.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all session events."""

    pass


# =============================================================================
# Turn Events
# =============================================================================


@dataclass(slots=True)
class TurnStarted(Event):
    """Emitted when a user message starts a turn.

    Attributes:
        turn_id: Unique identifier for the turn.
        mode: The analysis mode the turn runs in (``"chat"`` or ``"building"``).
    """

    turn_id: str
    mode: str


@dataclass(slots=True)
class DirectivesExecuted(Event):
    """Emitted after a chat reply's directives were applied.

    Attributes:
        turn_id: The turn that produced the directives.
        commands: The executed commands, in source order.
    """

    turn_id: str
    commands: tuple[Any, ...]


@dataclass(slots=True)
class TurnCompleted(Event):
    """Emitted when a turn appends its assistant message."""

    turn_id: str
    response_text: str


@dataclass(slots=True)
class TurnFailed(Event):
    """Emitted when the assistant collaborator failed during a turn.

    Attributes:
        turn_id: The failed turn.
        error: Internal error description, for logs and diagnostics only.
    """

    turn_id: str
    error: str


@dataclass(slots=True)
class AnalysisModeChanged(Event):
    """Emitted whenever the session moves between analysis modes."""

    previous: str
    current: str


@dataclass(slots=True)
class BomReady(Event):
    """Emitted when a building analysis leaves a BOM awaiting review."""

    line_count: int


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus.

    Handlers run synchronously in registration order. A handler that raises
    is logged and the remaining handlers still run. Bound methods are held
    weakly so observers can be garbage collected.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``."""
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed handler %s to event type %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                return

    def publish(self, event: E) -> None:
        """Broadcast ``event`` to its handlers."""
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead_indices: list[int] = []
        for i, handler_ref in enumerate(list(handlers)):
            handler = handler_ref.resolve()
            if handler is None:
                dead_indices.append(i)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
        for i in reversed(dead_indices):
            handlers.pop(i)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "TurnStarted",
    "DirectivesExecuted",
    "TurnCompleted",
    "TurnFailed",
    "AnalysisModeChanged",
    "BomReady",
]
