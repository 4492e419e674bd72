"""Tests for the OpenAI client wrapper."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from promptdeck.config import Settings
from promptdeck.llm import AIClientError, OpenAIClient, create_ai_client


@pytest.fixture
def client() -> OpenAIClient:
    c = OpenAIClient(api_key="sk-test")
    c.client = MagicMock()
    return c


def _completion(total_tokens: int = 12) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Hello, Ada!"))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def _bad_request(message: str) -> openai.BadRequestError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(400, request=request)
    return openai.BadRequestError(message, response=response, body={"message": message})


class TestConstruction:
    def test_missing_key_rejected(self) -> None:
        with pytest.raises(ValueError, match="API key"):
            OpenAIClient(api_key=None)

    def test_factory_returns_none_without_key(self) -> None:
        assert create_ai_client(Settings(openai_api_key=None, _env_file=None)) is None

    def test_factory_builds_client(self) -> None:
        settings = Settings(openai_api_key="sk-test", default_model="gpt-x", _env_file=None)
        ai_client = create_ai_client(settings)
        assert isinstance(ai_client, OpenAIClient)
        assert ai_client.default_model == "gpt-x"


class TestChatCompletion:
    async def test_passes_model_and_messages(self, client) -> None:
        client.client.chat.completions.create = AsyncMock(return_value=_completion())
        messages = [{"role": "user", "content": "hi"}]

        response = await client.chat_completion(messages, model="gpt-5-nano")

        assert response.choices[0].message.content == "Hello, Ada!"
        client.client.chat.completions.create.assert_awaited_once_with(
            model="gpt-5-nano", messages=messages
        )

    async def test_max_tokens_maps_to_max_completion_tokens(self, client) -> None:
        client.client.chat.completions.create = AsyncMock(return_value=_completion())
        await client.chat_completion([{"role": "user", "content": "hi"}], max_tokens=64)
        kwargs = client.client.chat.completions.create.await_args.kwargs
        assert kwargs["max_completion_tokens"] == 64
        assert kwargs["model"] == "gpt-5-nano"

    async def test_empty_messages_rejected(self, client) -> None:
        with pytest.raises(ValueError):
            await client.chat_completion([])

    async def test_api_error_wrapped(self, client) -> None:
        client.client.chat.completions.create = AsyncMock(
            side_effect=_bad_request("model not found")
        )
        with pytest.raises(AIClientError, match="OpenAI API Error: model not found"):
            await client.chat_completion([{"role": "user", "content": "hi"}])

    async def test_other_errors_propagate_unchanged(self, client) -> None:
        client.client.chat.completions.create = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError, match="boom"):
            await client.chat_completion([{"role": "user", "content": "hi"}])


class TestStreaming:
    async def test_collects_chunks(self, client) -> None:
        async def stream():
            for piece in ["Hel", "lo", None, "!"]:
                delta = SimpleNamespace(content=piece)
                yield SimpleNamespace(choices=[SimpleNamespace(delta=delta)])

        client.client.chat.completions.create = AsyncMock(return_value=stream())
        seen: list[str] = []

        content = await client.stream_chat_completion(
            [{"role": "user", "content": "hi"}], on_chunk=lambda part, full: seen.append(full)
        )

        assert content == "Hello!"
        assert seen == ["Hel", "Hello", "Hello!"]


class TestModels:
    async def test_connection_test_never_raises(self, client) -> None:
        client.client.models.list = AsyncMock(side_effect=RuntimeError("offline"))
        assert await client.test_connection() is False

    async def test_list_models(self, client) -> None:
        client.client.models.list = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(id="gpt-5-nano")])
        )
        models = await client.list_models()
        assert [m.id for m in models] == ["gpt-5-nano"]
        assert await client.test_connection() is True

    async def test_get_model_requires_id(self, client) -> None:
        with pytest.raises(ValueError):
            await client.get_model("")
