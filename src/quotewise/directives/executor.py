"""Apply validated quote commands through caller-supplied callbacks."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from ..core.inventory import InventoryLookup
from .diagnostics import DiagnosticReason, DiagnosticSink, DirectiveDiagnostic, report
from .grammar import ADD_TO_QUOTE
from .validation import AddToQuote, Command, RemoveFromQuote

LOGGER = logging.getLogger(__name__)

__all__ = ["AddToQuoteCallback", "RemoveFromQuoteCallback", "ActionExecutor"]

AddToQuoteCallback = Callable[[Any, int], None]
RemoveFromQuoteCallback = Callable[[str], None]


class ActionExecutor:
    """Executes commands in order, each at most once per call.

    The executor never owns inventory; it borrows ``lookup`` for the duration
    of the turn. Exceptions raised by the quote callbacks propagate and
    earlier side effects stay applied.
    """

    def __init__(
        self,
        lookup: InventoryLookup,
        on_add_to_quote: AddToQuoteCallback,
        on_remove_from_quote: RemoveFromQuoteCallback,
        *,
        diagnostics: DiagnosticSink | None = None,
    ) -> None:
        self._lookup = lookup
        self._on_add = on_add_to_quote
        self._on_remove = on_remove_from_quote
        self._diagnostics = diagnostics

    def execute(self, commands: Iterable[Command]) -> tuple[Command, ...]:
        """Run ``commands`` and return the ones that produced a side effect."""

        executed: list[Command] = []
        for command in commands:
            if self._execute_one(command):
                executed.append(command)
        if executed:
            LOGGER.debug("Executed %d quote command(s)", len(executed))
        return tuple(executed)

    def _execute_one(self, command: Command) -> bool:
        if isinstance(command, AddToQuote):
            item = self._lookup(command.sku)
            if item is None:
                report(
                    self._diagnostics,
                    DirectiveDiagnostic(
                        reason=DiagnosticReason.LOOKUP_MISS,
                        kind=ADD_TO_QUOTE,
                        sku=command.sku,
                        details={"quantity": command.quantity},
                    ),
                )
                return False
            self._on_add(item, command.quantity)
            return True
        if isinstance(command, RemoveFromQuote):
            self._on_remove(command.sku)
            return True
        LOGGER.warning("Ignoring unsupported command %r", command)
        return False
