"""Directive extraction and execution for a single assistant reply."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from ..core.inventory import build_inventory_lookup
from .diagnostics import DiagnosticSink
from .executor import ActionExecutor, AddToQuoteCallback, RemoveFromQuoteCallback
from .grammar import scan_directives
from .sanitizer import sanitize_response, strip_directive_spans
from .validation import Command, validate_directives

LOGGER = logging.getLogger(__name__)

__all__ = ["TurnContext", "ExecutionResult", "process_response"]


def _ignore_add(_item: Any, _quantity: int) -> None:
    return None


def _ignore_remove(_sku: str) -> None:
    return None


@dataclass(slots=True)
class TurnContext:
    """Caller-supplied capabilities for one turn.

    Attributes:
        inventory: Catalog items, each exposing an ``id``; used only for lookup.
        on_add_to_quote: Invoked as ``(item, quantity)`` for resolved adds.
        on_remove_from_quote: Invoked as ``(sku)`` for removals.
        quote_lines: Optional snapshot of the current quote for prompting.
    """

    inventory: Sequence[Any] = field(default_factory=tuple)
    on_add_to_quote: AddToQuoteCallback = _ignore_add
    on_remove_from_quote: RemoveFromQuoteCallback = _ignore_remove
    quote_lines: Sequence[Any] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Commands that produced side effects plus the directive-free text."""

    executed_commands: tuple[Command, ...]
    cleaned_text: str


def process_response(
    text: str,
    context: TurnContext,
    *,
    diagnostics: DiagnosticSink | None = None,
) -> ExecutionResult:
    """Scan, validate, execute and strip directives found in ``text``.

    Every recognized directive is removed from the returned text, including
    ones that failed validation or referenced an unknown SKU.
    """

    if not text or not isinstance(text, str):
        return ExecutionResult(executed_commands=(), cleaned_text="")
    directives = list(scan_directives(text))
    commands = [
        command
        for _, command in validate_directives(directives, diagnostics=diagnostics)
        if command is not None
    ]
    executor = ActionExecutor(
        build_inventory_lookup(context.inventory),
        context.on_add_to_quote,
        context.on_remove_from_quote,
        diagnostics=diagnostics,
    )
    executed = executor.execute(commands)
    cleaned = sanitize_response(strip_directive_spans(text, [directive.span for directive in directives]))
    LOGGER.debug(
        "Processed reply: %d directive(s), %d valid, %d executed",
        len(directives),
        len(commands),
        len(executed),
    )
    return ExecutionResult(executed_commands=executed, cleaned_text=cleaned)
