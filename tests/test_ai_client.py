"""Tests for the OpenAI-compatible AI client."""

from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any, cast
from unittest.mock import AsyncMock

import httpx
import pytest
from openai import AsyncOpenAI

from quotewise.ai.client import AIClient, ClientSettings


def _response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _make_client(create: AsyncMock, **overrides: Any) -> AIClient:
    fake = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)), close=AsyncMock())
    settings = ClientSettings(
        base_url="http://local",
        api_key="test",
        model="stub-model",
        retry_min_seconds=0,
        retry_max_seconds=0,
        **overrides,
    )
    return AIClient(settings, client=cast(AsyncOpenAI, fake))


class TestCompleteChat:
    """Request payloads and retry behaviour."""

    @pytest.mark.asyncio
    async def test_returns_message_text_and_sends_payload(self) -> None:
        create = AsyncMock(return_value=_response("hello"))
        client = _make_client(create)

        text = await client.complete_chat([{"role": "user", "content": "hi"}], temperature=0.3, max_tokens=50)

        assert text == "hello"
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "stub-model"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 50
        assert "response_format" not in kwargs

    @pytest.mark.asyncio
    async def test_json_mode_sets_response_format(self) -> None:
        create = AsyncMock(return_value=_response("{}"))
        client = _make_client(create)

        await client.complete_chat([{"role": "user", "content": "x"}], temperature=None, json_mode=True)

        kwargs = create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "temperature" not in kwargs

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty_string(self) -> None:
        client = _make_client(AsyncMock(return_value=_response(None)))

        assert await client.complete_chat([{"role": "user", "content": "x"}]) == ""

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self) -> None:
        request = httpx.Request("POST", "http://local/chat/completions")
        create = AsyncMock(side_effect=[httpx.ReadTimeout("slow", request=request), _response("recovered")])
        client = _make_client(create, max_retries=3)

        assert await client.complete_chat([{"role": "user", "content": "x"}]) == "recovered"
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_last_error_is_reraised_when_attempts_run_out(self) -> None:
        request = httpx.Request("POST", "http://local/chat/completions")
        create = AsyncMock(side_effect=httpx.ConnectTimeout("down", request=request))
        client = _make_client(create, max_retries=2)

        with pytest.raises(httpx.ConnectTimeout):
            await client.complete_chat([{"role": "user", "content": "x"}])
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_non_transient_errors_are_not_retried(self) -> None:
        create = AsyncMock(side_effect=KeyError("bug"))
        client = _make_client(create, max_retries=3)

        with pytest.raises(KeyError):
            await client.complete_chat([{"role": "user", "content": "x"}])
        assert create.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_choices_raise(self) -> None:
        client = _make_client(AsyncMock(return_value=SimpleNamespace(choices=[])))

        with pytest.raises(ValueError, match="no choices"):
            await client.complete_chat([{"role": "user", "content": "x"}])

    @pytest.mark.asyncio
    async def test_messages_are_required(self) -> None:
        client = _make_client(AsyncMock())

        with pytest.raises(ValueError):
            await client.complete_chat([])

    @pytest.mark.asyncio
    async def test_debug_logging_dumps_payload(self, caplog: pytest.LogCaptureFixture) -> None:
        client = _make_client(AsyncMock(return_value=_response("ok")), debug_logging=True)

        with caplog.at_level(logging.DEBUG, logger="quotewise.ai.client"):
            await client.complete_chat([{"role": "user", "content": "find readers"}])

        assert "find readers" in caplog.text


@pytest.mark.asyncio
async def test_aclose_closes_underlying_client() -> None:
    create = AsyncMock()
    client = _make_client(create)

    await client.aclose()

    client._client.close.assert_awaited_once()  # type: ignore[attr-defined]
