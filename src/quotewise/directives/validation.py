"""Typed quote commands and the validator that builds them from raw directives."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from .diagnostics import DiagnosticReason, DiagnosticSink, DirectiveDiagnostic, report
from .grammar import ADD_TO_QUOTE, REMOVE_FROM_QUOTE, RawDirective

__all__ = [
    "MIN_QUANTITY",
    "MAX_QUANTITY",
    "SKU_RE",
    "CommandValidationError",
    "AddToQuote",
    "RemoveFromQuote",
    "Command",
    "validate_directive",
    "validate_directives",
    "validate_sku",
    "parse_quantity",
]

MIN_QUANTITY = 1
MAX_QUANTITY = 1000
SKU_RE = re.compile(r"^[A-Z0-9-]+$")
_DIGITS_RE = re.compile(r"^[0-9]+$")


class CommandValidationError(ValueError):
    """Raised when a command field falls outside policy."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


def validate_sku(value: object) -> str:
    """Return ``value`` when it is an uppercase/digit/hyphen SKU."""

    if not isinstance(value, str) or not SKU_RE.fullmatch(value):
        raise CommandValidationError(DiagnosticReason.INVALID_SKU, f"Invalid SKU {value!r}")
    return value


def parse_quantity(value: object) -> int:
    """Parse a base-10 quantity string (or int) within the allowed bounds."""

    if isinstance(value, bool):
        raise CommandValidationError(DiagnosticReason.INVALID_QUANTITY, f"Invalid quantity {value!r}")
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, str) and _DIGITS_RE.fullmatch(value):
        quantity = int(value, 10)
    else:
        raise CommandValidationError(DiagnosticReason.INVALID_QUANTITY, f"Invalid quantity {value!r}")
    if not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
        raise CommandValidationError(
            DiagnosticReason.INVALID_QUANTITY,
            f"Quantity {quantity} outside {MIN_QUANTITY}..{MAX_QUANTITY}",
        )
    return quantity


@dataclass(frozen=True, slots=True)
class AddToQuote:
    """Add ``quantity`` units of the catalog item ``sku`` to the quote."""

    sku: str
    quantity: int

    def __post_init__(self) -> None:
        validate_sku(self.sku)
        parse_quantity(self.quantity)


@dataclass(frozen=True, slots=True)
class RemoveFromQuote:
    """Remove the quote line for ``sku``."""

    sku: str

    def __post_init__(self) -> None:
        validate_sku(self.sku)


Command = Union[AddToQuote, RemoveFromQuote]


def validate_directive(
    directive: RawDirective,
    *,
    diagnostics: DiagnosticSink | None = None,
) -> Command | None:
    """Convert ``directive`` into a :data:`Command` or ``None`` when rejected."""

    sku = directive.fields.get("SKU", "")
    try:
        if directive.kind == ADD_TO_QUOTE:
            return AddToQuote(
                sku=validate_sku(sku),
                quantity=parse_quantity(directive.fields.get("QUANTITY", "")),
            )
        if directive.kind == REMOVE_FROM_QUOTE:
            return RemoveFromQuote(sku=validate_sku(sku))
    except CommandValidationError as exc:
        report(
            diagnostics,
            DirectiveDiagnostic(
                reason=exc.reason,
                kind=directive.kind,
                sku=sku,
                details={"message": str(exc), "span": list(directive.span)},
            ),
        )
        return None
    return None


def validate_directives(
    directives: Iterable[RawDirective],
    *,
    diagnostics: DiagnosticSink | None = None,
) -> Iterator[tuple[RawDirective, Command | None]]:
    """Pair every directive with its command (``None`` for rejected ones)."""

    for directive in directives:
        yield directive, validate_directive(directive, diagnostics=diagnostics)
