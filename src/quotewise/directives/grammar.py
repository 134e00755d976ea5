"""Directive grammar and scanner for action markers embedded in model replies.

Assistant replies may carry bracketed directives such as
``[ACTION:ADD_TO_QUOTE, SKU:PRINTER-001, QUANTITY:2]``. This module finds them
and reports their exact source spans so the sanitizer can cut them out later.
Scanning is pure and reentrant; it never raises on odd input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

__all__ = [
    "ADD_TO_QUOTE",
    "REMOVE_FROM_QUOTE",
    "DIRECTIVE_KINDS",
    "DIRECTIVE_RE",
    "RawDirective",
    "scan_directives",
]

ADD_TO_QUOTE = "ADD_TO_QUOTE"
REMOVE_FROM_QUOTE = "REMOVE_FROM_QUOTE"
DIRECTIVE_KINDS: tuple[str, ...] = (ADD_TO_QUOTE, REMOVE_FROM_QUOTE)

# One alternation keeps matches ordered and non-overlapping in a single pass.
# Values are captured loosely here; the validator decides what is acceptable.
DIRECTIVE_RE = re.compile(
    r"\[ACTION:(?:"
    r"(?P<add>ADD_TO_QUOTE),[ \t]*SKU:(?P<add_sku>[^\],\[]*),[ \t]*QUANTITY:(?P<add_quantity>[^\],\[]*)"
    r"|"
    r"(?P<remove>REMOVE_FROM_QUOTE),[ \t]*SKU:(?P<remove_sku>[^\],\[]*)"
    r")\]"
)


@dataclass(frozen=True, slots=True)
class RawDirective:
    """Unvalidated directive captured from assistant text."""

    kind: str
    fields: Mapping[str, str] = field(default_factory=dict)
    span: tuple[int, int] = (0, 0)

    @property
    def start(self) -> int:
        return self.span[0]

    @property
    def end(self) -> int:
        return self.span[1]


def scan_directives(text: Any) -> Iterator[RawDirective]:
    """Yield directives found in ``text`` from left to right.

    Field values are whitespace-trimmed. Bracketed text that does not match a
    known directive shape is skipped and stays in the text.
    """

    if not text or not isinstance(text, str):
        return
    for match in DIRECTIVE_RE.finditer(text):
        if match.group("add"):
            yield RawDirective(
                kind=ADD_TO_QUOTE,
                fields={
                    "SKU": match.group("add_sku").strip(),
                    "QUANTITY": match.group("add_quantity").strip(),
                },
                span=match.span(),
            )
        else:
            yield RawDirective(
                kind=REMOVE_FROM_QUOTE,
                fields={"SKU": match.group("remove_sku").strip()},
                span=match.span(),
            )
