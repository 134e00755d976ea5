"""Directive grammar, validation, execution and sanitizing."""

from .diagnostics import DiagnosticReason, DirectiveDiagnostic, InMemoryDiagnosticSink, LoggingDiagnosticSink
from .engine import ExecutionResult, TurnContext, process_response
from .executor import ActionExecutor
from .grammar import ADD_TO_QUOTE, REMOVE_FROM_QUOTE, RawDirective, scan_directives
from .sanitizer import sanitize_response, strip_directive_spans
from .validation import (
    MAX_QUANTITY,
    MIN_QUANTITY,
    AddToQuote,
    Command,
    CommandValidationError,
    RemoveFromQuote,
    validate_directive,
    validate_directives,
)

__all__ = [
    "ADD_TO_QUOTE",
    "REMOVE_FROM_QUOTE",
    "MIN_QUANTITY",
    "MAX_QUANTITY",
    "RawDirective",
    "scan_directives",
    "AddToQuote",
    "RemoveFromQuote",
    "Command",
    "CommandValidationError",
    "validate_directive",
    "validate_directives",
    "ActionExecutor",
    "strip_directive_spans",
    "sanitize_response",
    "TurnContext",
    "ExecutionResult",
    "process_response",
    "DiagnosticReason",
    "DirectiveDiagnostic",
    "InMemoryDiagnosticSink",
    "LoggingDiagnosticSink",
]
