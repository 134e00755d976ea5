"""Console bootstrap for the Quotewise quoting assistant."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .ai.assistant import AssistantBackend, OpenAIAssistant
from .ai.client import AIClient, ClientSettings
from .chat.commands import HELP_TEXT, ManualCommandType, is_manual_command, parse_manual_command
from .core.inventory import load_inventory
from .core.quote import Quote
from .directives.diagnostics import LoggingDiagnosticSink
from .directives.engine import TurnContext
from .services.settings import Settings, SettingsStore, redact_secret
from .session.errors import SessionError
from .session.events import DirectivesExecuted
from .session.orchestrator import QuoteSession
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)

LineReader = Callable[[str], Awaitable[Optional[str]]]


def configure_logging(settings: Settings | None = None, *, debug: bool = False) -> Path:
    """Configure logging from ``settings``; ``None`` bootstraps with defaults."""

    options = logging_utils.LogOptions.from_settings(settings, debug=debug)
    log_path = logging_utils.setup_logging(options)
    _LOGGER.debug("Logging to %s (level=%s)", log_path, logging.getLevelName(options.level))
    return log_path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, ValueError, TypeError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_client_settings(settings: Settings, *, debug_logging: bool = False) -> ClientSettings:
    return ClientSettings(
        base_url=settings.base_url,
        api_key=settings.api_key,
        model=settings.model,
        organization=settings.organization,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
        default_headers=settings.default_headers or None,
        debug_logging=debug_logging or settings.debug_logging,
    )


def build_session(settings: Settings, backend: AssistantBackend) -> QuoteSession:
    """Create a :class:`QuoteSession` bounded by the configured limits."""

    return QuoteSession(
        backend,
        turn_timeout=settings.turn_timeout,
        max_input_chars=settings.max_input_chars,
        diagnostics=LoggingDiagnosticSink(),
    )


class ConsoleApp:
    """Line-oriented front end over one :class:`QuoteSession`.

    Slash commands are handled locally; everything else is a chat turn.
    """

    def __init__(
        self,
        session: QuoteSession,
        *,
        inventory: Sequence[Mapping[str, Any]] = (),
        quote: Quote | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.session = session
        self.inventory = list(inventory)
        self.quote = quote or Quote()
        self._stream = stream or sys.stdout
        self._notices: list[str] = []
        session.events.subscribe(DirectivesExecuted, self._on_directives_executed)

    def context(self) -> TurnContext:
        return TurnContext(
            inventory=self.inventory,
            on_add_to_quote=self.quote.add_item,
            on_remove_from_quote=self.quote.remove_item,
            quote_lines=self.quote.lines,
        )

    async def run(self, read_line: LineReader) -> None:
        self._write("Quotewise ready. Type /help for commands.")
        while True:
            line = await read_line("> ")
            if line is None:
                break
            if not await self.handle_line(line):
                break

    async def handle_line(self, line: str) -> bool:
        """Process one input line; return ``False`` when the user quits."""

        if is_manual_command(line):
            return self._handle_manual_command(line)
        try:
            reply = await self.session.handle_send_message(line, self.context())
        except SessionError as exc:
            _LOGGER.info("Message rejected: %s", exc)
            self._write(exc.message)
            return True
        if reply is not None:
            self._write(reply.content)
        self._flush_notices()
        return True

    def _handle_manual_command(self, line: str) -> bool:
        try:
            request = parse_manual_command(line)
        except ValueError as exc:
            self._write(str(exc))
            return True
        if request is None:
            return True
        if request.command is ManualCommandType.QUIT:
            return False
        if request.command is ManualCommandType.HELP:
            self._write(HELP_TEXT)
        elif request.command is ManualCommandType.QUOTE:
            self._write(self.render_quote(as_json=bool(request.args.get("as_json"))))
        else:
            try:
                if request.command is ManualCommandType.BOM_ADD:
                    self._write(self.session.add_bom_to_quote(self.context()).content)
                else:
                    self.session.dismiss_bom()
                    self._write("Bill of materials dismissed.")
            except SessionError as exc:
                self._write(exc.message)
        return True

    def render_quote(self, *, as_json: bool = False) -> str:
        lines = self.quote.lines
        if as_json:
            payload = {"lines": [line.to_dict() for line in lines], "total": str(self.quote.total)}
            return json.dumps(payload, indent=2)
        if not lines:
            return "Quote is empty."
        rendered = []
        for line in lines:
            flag = " (backorder)" if line.is_backorder else ""
            price = "" if line.line_total is None else f" = {line.line_total}"
            rendered.append(f"{line.sku:<16} {line.name} x{line.quantity}{price}{flag}")
        rendered.append(f"Total: {self.quote.total}")
        return "\n".join(rendered)

    def _on_directives_executed(self, event: DirectivesExecuted) -> None:
        count = len(event.commands)
        self._notices.append(
            f"[quote updated: {count} change{'' if count == 1 else 's'}, total {self.quote.total}]"
        )

    def _flush_notices(self) -> None:
        for notice in self._notices:
            self._write(notice)
        self._notices.clear()

    def _write(self, text: str) -> None:
        self._stream.write(f"{text}\n")
        self._stream.flush()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `quotewise` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("QUOTEWISE_DEBUG", default=False)
    configure_logging(debug=debug)

    settings_path = args.settings_path or os.environ.get("QUOTEWISE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    configure_logging(settings, debug=debug)

    inventory_path = args.inventory or settings.inventory_path
    inventory: list[dict[str, Any]] = []
    if inventory_path:
        try:
            inventory = load_inventory(Path(inventory_path).expanduser())
        except (OSError, ValueError) as exc:
            print(f"Unable to load inventory from {inventory_path}: {exc}", file=sys.stderr)
            raise SystemExit(2) from exc
    _LOGGER.info("Loaded %d inventory item(s)", len(inventory))

    client = AIClient(build_client_settings(settings, debug_logging=debug))
    backend = OpenAIAssistant(client, temperature=settings.temperature, max_tokens=settings.max_tokens)
    app = ConsoleApp(build_session(settings, backend), inventory=inventory)
    try:
        asyncio.run(_run_console(app, client))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")


async def _run_console(app: ConsoleApp, client: AIClient) -> None:
    try:
        await app.run(_read_stdin_line)
    finally:
        await client.aclose()


async def _read_stdin_line(prompt: str) -> str | None:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="quotewise",
        description="Chat with the quoting assistant or inspect its configuration.",
    )
    parser.add_argument(
        "--inventory",
        metavar="PATH",
        help="JSON inventory file (a list of items or {\"inventory\": [...]}).",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.quotewise/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is type(None) or normalized.lower() in {"none", "null"}:
        return None
    if target is dict:
        try:
            return json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "secret_backend": store.vault.strategy,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("QUOTEWISE_"))
