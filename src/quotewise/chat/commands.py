"""Parsing helpers for manual chat commands handled without the model."""

from __future__ import annotations

import shlex
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

__all__ = [
    "ManualCommandType",
    "ManualCommandRequest",
    "is_manual_command",
    "parse_manual_command",
    "HELP_TEXT",
]


class ManualCommandType(str, Enum):
    """Manual chat commands handled locally."""

    QUOTE = "quote"
    BOM_ADD = "bom_add"
    BOM_DISMISS = "bom_dismiss"
    HELP = "help"
    QUIT = "quit"


@dataclass(slots=True)
class ManualCommandRequest:
    """Parsed representation of a manual chat command string."""

    command: ManualCommandType
    args: dict[str, Any]
    raw: str


_MANUAL_PREFIXES = ("/", "::", "!")
_MANUAL_COMMAND_ALIASES = {
    "quote": ManualCommandType.QUOTE,
    "q": ManualCommandType.QUOTE,
    "help": ManualCommandType.HELP,
    "h": ManualCommandType.HELP,
    "?": ManualCommandType.HELP,
    "quit": ManualCommandType.QUIT,
    "exit": ManualCommandType.QUIT,
}
_BOM_ACTIONS = {
    "add": ManualCommandType.BOM_ADD,
    "accept": ManualCommandType.BOM_ADD,
    "dismiss": ManualCommandType.BOM_DISMISS,
    "discard": ManualCommandType.BOM_DISMISS,
}
_QUOTE_BOOLEAN_FLAGS = {
    "--json": True,
    "--as-json": True,
}

HELP_TEXT = """Commands:
  /quote [--json]   Show the current quote
  /bom add          Add the pending bill of materials to the quote
  /bom dismiss      Discard the pending bill of materials
  /help             Show this help
  /quit             Leave the session"""


def is_manual_command(text: str) -> bool:
    """Return ``True`` when ``text`` starts with a manual command prefix."""

    normalized = (text or "").strip()
    if not normalized:
        return False
    return _split_manual_prefix(normalized) is not None


def parse_manual_command(text: str) -> ManualCommandRequest | None:
    """Parse ``text`` into a :class:`ManualCommandRequest` when prefixed.

    Raises:
        ValueError: For an unknown verb, flag or BOM action.
    """

    normalized = (text or "").strip()
    if not normalized:
        return None
    prefix = _split_manual_prefix(normalized)
    if prefix is None:
        return None
    _, remainder = prefix
    tokens = _tokenize_manual_command(remainder)
    if not tokens:
        raise ValueError("Manual command is missing a verb. Try /help.")
    command_token = tokens.popleft().lower()
    if command_token == "bom":
        return ManualCommandRequest(command=_parse_bom_action(tokens), args={}, raw=normalized)
    command = _MANUAL_COMMAND_ALIASES.get(command_token)
    if command is None:
        raise ValueError(f"Unknown manual command '{command_token}'. Try /help.")
    args: dict[str, Any] = {}
    if command is ManualCommandType.QUOTE:
        args = _parse_quote_command(tokens)
    elif tokens:
        raise ValueError(f"/{command_token} takes no arguments")
    return ManualCommandRequest(command=command, args=args, raw=normalized)


def _split_manual_prefix(text: str) -> tuple[str, str] | None:
    candidate = text.lstrip()
    for prefix in _MANUAL_PREFIXES:
        if candidate.startswith(prefix):
            remainder = candidate[len(prefix) :].lstrip()
            return prefix, remainder
    return None


def _tokenize_manual_command(text: str) -> deque[str]:
    try:
        parts = shlex.split(text, posix=True)
    except ValueError as exc:  # pragma: no cover - shlex provides the details
        raise ValueError(f"Unable to parse manual command: {exc}") from exc
    return deque(parts)


def _parse_bom_action(tokens: deque[str]) -> ManualCommandType:
    if not tokens:
        raise ValueError("Usage: /bom add | /bom dismiss")
    action = tokens.popleft().lower()
    command = _BOM_ACTIONS.get(action)
    if command is None:
        raise ValueError(f"Unknown BOM action '{action}'. Use /bom add or /bom dismiss.")
    if tokens:
        raise ValueError(f"/bom {action} takes no further arguments")
    return command


def _parse_quote_command(tokens: deque[str]) -> dict[str, Any]:
    args: dict[str, Any] = {}
    while tokens:
        token = tokens.popleft()
        flag = token.lower()
        if flag in _QUOTE_BOOLEAN_FLAGS:
            args["as_json"] = _QUOTE_BOOLEAN_FLAGS[flag]
            continue
        raise ValueError(f"Unknown quote flag '{token}'")
    return args
