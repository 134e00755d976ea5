"""Remove directive spans from assistant text before display."""

from __future__ import annotations

from typing import Iterable

from .grammar import scan_directives

__all__ = ["strip_directive_spans", "sanitize_response"]

_HORIZONTAL_WS = " \t"
_NO_SPACE_BEFORE = ".,;:!?)]}"


def strip_directive_spans(text: str, spans: Iterable[tuple[int, int]]) -> str:
    """Cut ``spans`` out of ``text`` and tidy the seams they leave behind.

    Only the text touching a removed span is normalized: horizontal whitespace
    on either side collapses to a single space, no space is kept in front of
    punctuation or next to a line break, and the whole result is trimmed.
    """

    if not text:
        return ""
    ordered = sorted((max(0, start), min(len(text), end)) for start, end in spans)
    pieces: list[str] = []
    cursor = 0
    for start, end in ordered:
        if start < cursor:
            # Overlapping spans are clipped to the previous end.
            start = cursor
        if end <= start:
            continue
        pieces.append(text[cursor:start])
        cursor = end
    pieces.append(text[cursor:])

    result = pieces[0]
    for piece in pieces[1:]:
        result = _join_seam(result, piece)
    return result.strip()


def _join_seam(left: str, right: str) -> str:
    left = left.rstrip(_HORIZONTAL_WS)
    right = right.lstrip(_HORIZONTAL_WS)
    if not left or not right:
        return left + right
    if left.endswith("\n") or right.startswith(("\n", "\r")) or right[0] in _NO_SPACE_BEFORE:
        return left + right
    return f"{left} {right}"


def sanitize_response(text: str) -> str:
    """Strip every recognized directive from ``text``.

    Cutting a span can splice a new directive together from the text around
    it, so scanning repeats until nothing matches.
    """

    if not text or not isinstance(text, str):
        return ""
    cleaned = text
    while True:
        spans = [directive.span for directive in scan_directives(cleaned)]
        if not spans:
            return cleaned.strip()
        cleaned = strip_directive_spans(cleaned, spans)
