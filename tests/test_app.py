"""Tests covering the console bootstrap helpers."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, Iterable

import pytest

from helpers import FakeAssistant, make_analysis

from quotewise import app
from quotewise.core.quote import Quote
from quotewise.services.settings import Settings, SettingsStore
from quotewise.session.models import AnalysisMode
from quotewise.session.orchestrator import QuoteSession

BUILDING_REQUEST = "We need access control for a 4 floor office with 100 staff"


def _scripted_reader(lines: Iterable[str]):
    pending = list(lines)

    async def read_line(prompt: str) -> str | None:
        if not pending:
            return None
        return pending.pop(0)

    return read_line


@pytest.fixture
def console(inventory: list[dict]) -> tuple[app.ConsoleApp, FakeAssistant, io.StringIO]:
    assistant = FakeAssistant(reply="Added [ACTION:ADD_TO_QUOTE, SKU:ITEM-1, QUANTITY:2] for you.")
    stream = io.StringIO()
    console_app = app.ConsoleApp(QuoteSession(assistant), inventory=inventory, stream=stream)
    return console_app, assistant, stream


class TestConsoleApp:
    """The console loop drives one session and its quote."""

    @pytest.mark.asyncio
    async def test_chat_turn_updates_quote(self, console: tuple[app.ConsoleApp, FakeAssistant, io.StringIO]) -> None:
        console_app, _, stream = console

        assert await console_app.handle_line("add two readers") is True

        assert console_app.quote.get("ITEM-1").quantity == 2
        assert stream.getvalue().strip().splitlines()[-2:] == [
            "Added for you.",
            "[quote updated: 1 change, total 240.0]",
        ]

    @pytest.mark.asyncio
    async def test_replies_without_directives_print_no_update(
        self, console: tuple[app.ConsoleApp, FakeAssistant, io.StringIO]
    ) -> None:
        console_app, assistant, stream = console
        assistant.reply = "Readers are in stock."

        await console_app.handle_line("are readers in stock?")

        assert "quote updated" not in stream.getvalue()

    @pytest.mark.asyncio
    async def test_context_exposes_current_quote_lines(self, console: tuple[app.ConsoleApp, FakeAssistant, io.StringIO]) -> None:
        console_app, _, _ = console
        await console_app.handle_line("add two readers")

        context = console_app.context()

        assert [line.sku for line in context.quote_lines] == ["ITEM-1"]
        assert context.inventory == console_app.inventory

    @pytest.mark.asyncio
    async def test_rejected_input_is_reported(self, console: tuple[app.ConsoleApp, FakeAssistant, io.StringIO]) -> None:
        console_app, assistant, stream = console

        await console_app.handle_line("<script>alert(1)</script>")

        assert "script markup" in stream.getvalue()
        assert assistant.chat_calls == []

    @pytest.mark.asyncio
    async def test_bom_commands(self, inventory: list[dict]) -> None:
        stream = io.StringIO()
        console_app = app.ConsoleApp(QuoteSession(FakeAssistant(analysis=make_analysis())), inventory=inventory, stream=stream)

        await console_app.handle_line(BUILDING_REQUEST)
        assert console_app.session.mode is AnalysisMode.BOM_PREVIEW
        await console_app.handle_line("/bom add")

        assert console_app.quote.get("ITEM-1").quantity == 12
        assert console_app.quote.get("ITEM-2").is_backorder
        assert "Added 2 items from the BOM" in stream.getvalue()

        await console_app.handle_line("/bom dismiss")
        await console_app.handle_line("/bom add")
        assert "no bill of materials" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_manual_commands_never_reach_the_model(self, console: tuple[app.ConsoleApp, FakeAssistant, io.StringIO]) -> None:
        console_app, assistant, stream = console

        await console_app.handle_line("/help")
        await console_app.handle_line("/quote")
        await console_app.handle_line("/nope")

        output = stream.getvalue()
        assert "/bom add" in output
        assert "Quote is empty." in output
        assert "Unknown manual command 'nope'" in output
        assert assistant.chat_calls == []

    @pytest.mark.asyncio
    async def test_quote_rendering(self, inventory: list[dict]) -> None:
        quote = Quote()
        quote.add_item(inventory[1], 3)
        console_app = app.ConsoleApp(QuoteSession(FakeAssistant()), inventory=inventory, quote=quote, stream=io.StringIO())

        text = console_app.render_quote()
        payload = json.loads(console_app.render_quote(as_json=True))

        assert "ITEM-2" in text and "(backorder)" in text
        assert "Total: 1350.0" in text
        assert payload["lines"][0]["quantity"] == 3
        assert payload["total"] == "1350.0"

    @pytest.mark.asyncio
    async def test_run_stops_on_quit_or_eof(self, console: tuple[app.ConsoleApp, FakeAssistant, io.StringIO]) -> None:
        console_app, assistant, _ = console

        await console_app.run(_scripted_reader(["hello", "/quit", "never sent"]))
        assert [message for message, _ in assistant.chat_calls] == ["hello"]

        await console_app.run(_scripted_reader([]))


def test_coerce_cli_overrides_casts_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "base_url=https://cli",
            "debug_logging=true",
            "max_input_chars=800",
            "turn_timeout=42.25",
            "organization=none",
            'default_headers={"X-Team": "sales"}',
        ]
    )

    assert overrides["base_url"] == "https://cli"
    assert overrides["debug_logging"] is True
    assert overrides["max_input_chars"] == 800
    assert overrides["turn_timeout"] == pytest.approx(42.25)
    assert overrides["organization"] == "none"
    assert overrides["default_headers"] == {"X-Team": "sales"}


@pytest.mark.parametrize("entry", ["not_a_setting=value", "missing-equals", "=value", "debug_logging=maybe"])
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_dump_settings_redacts_api_key(tmp_path: Path) -> None:
    settings = Settings(api_key="super-secret", base_url="https://example.com")
    store = SettingsStore(tmp_path / "settings.json")
    buffer = io.StringIO()

    app._dump_settings(settings, store, overrides={"base_url": "https://cli"}, stream=buffer)

    payload = json.loads(buffer.getvalue())
    assert "super-secret" not in payload["settings"]["api_key"]
    assert payload["meta"]["secret_backend"] == store.vault.strategy
    assert payload["meta"]["cli_overrides"] == ["base_url"]


def test_build_client_settings_maps_fields() -> None:
    settings = Settings(base_url="http://localhost:11434/v1", model="llama3", max_retries=5, default_headers={})

    client_settings = app.build_client_settings(settings, debug_logging=True)

    assert client_settings.base_url == "http://localhost:11434/v1"
    assert client_settings.model == "llama3"
    assert client_settings.max_retries == 5
    assert client_settings.default_headers is None
    assert client_settings.debug_logging is True


class _StubAIClient:
    instances: list["_StubAIClient"] = []

    def __init__(self, settings: Any) -> None:
        self.settings = settings
        self.closed = False
        _StubAIClient.instances.append(self)

    async def aclose(self) -> None:
        self.closed = True


class TestMain:
    @pytest.fixture(autouse=True)
    def _stub_runtime(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _StubAIClient.instances.clear()
        monkeypatch.setattr(app, "AIClient", _StubAIClient)
        self.logging_settings: list[Settings | None] = []
        monkeypatch.setattr(
            app, "configure_logging", lambda settings=None, *, debug=False: self.logging_settings.append(settings)
        )
        monkeypatch.setattr(app, "_read_stdin_line", _scripted_reader(["/quit"]))

    def test_dump_settings_exits_without_client(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        app.main(["--settings-path", str(tmp_path / "s.json"), "--set", "model=cli-model", "--dump-settings"])

        payload = json.loads(capsys.readouterr().out)
        assert payload["settings"]["model"] == "cli-model"
        assert _StubAIClient.instances == []

    def test_runs_console_and_closes_client(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        inventory_path = tmp_path / "inventory.json"
        inventory_path.write_text(json.dumps([{"id": "ITEM-1", "name": "Reader"}]), encoding="utf-8")

        app.main(["--settings-path", str(tmp_path / "s.json"), "--inventory", str(inventory_path)])

        assert "Quotewise ready" in capsys.readouterr().out
        (client,) = _StubAIClient.instances
        assert client.closed is True

    def test_bad_override_exits_with_usage_error(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            app.main(["--settings-path", str(tmp_path / "s.json"), "--set", "bogus=1"])
        assert excinfo.value.code == 2

    def test_missing_inventory_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            app.main(["--settings-path", str(tmp_path / "s.json"), "--inventory", str(tmp_path / "absent.json")])
        assert excinfo.value.code == 2

    def test_logging_is_reconfigured_from_loaded_settings(self, tmp_path: Path) -> None:
        app.main(
            [
                "--settings-path",
                str(tmp_path / "s.json"),
                "--set",
                "log_to_console=true",
                "--set",
                f"log_dir={tmp_path / 'logs'}",
            ]
        )

        bootstrap, configured = self.logging_settings
        assert bootstrap is None
        assert configured.log_to_console is True
        assert configured.log_dir == str(tmp_path / "logs")
