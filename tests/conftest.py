"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

from helpers import SAMPLE_INVENTORY, RecordingQuote

from quotewise.directives.diagnostics import InMemoryDiagnosticSink


@pytest.fixture
def inventory() -> list[dict]:
    return [dict(item) for item in SAMPLE_INVENTORY]


@pytest.fixture
def recorder() -> RecordingQuote:
    return RecordingQuote()


@pytest.fixture
def diagnostics() -> InMemoryDiagnosticSink:
    return InMemoryDiagnosticSink()


@pytest.fixture(autouse=True)
def _isolate_quotewise_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep developer QUOTEWISE_* variables and ~/.quotewise out of tests."""

    for name in list(os.environ):
        if name.startswith("QUOTEWISE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("QUOTEWISE_LOG_DIR", str(tmp_path / "logs"))
