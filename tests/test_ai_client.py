"""Tests for the OpenAI client wrapper and its retry behaviour."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import openai
import pytest

from ai_client import (
    LLMConfigurationError,
    LLMError,
    chat_completion,
    clamp_temperature,
    stream_chat_completion,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status: int):
    return cls("upstream said no", response=httpx.Response(status, request=_REQUEST), body=None)


class TestClampTemperature:
    @pytest.mark.parametrize("value,expected", [
        (None, 1.0), (0.7, 0.7), ("0.5", 0.5), (5, 2.0), (-1, 0.0), ("hot", 1.0),
    ])
    def test_clamp(self, value, expected):
        assert clamp_temperature(value) == expected


class TestChatCompletion:
    def test_builds_request(self, app, openai_client, make_completion):
        openai_client.chat.completions.create.return_value = make_completion("Hello!")
        with app.app_context():
            result = chat_completion("Hi", system_prompt="Be kind", temperature=3)

        assert result["response"] == "Hello!"
        assert result["model"] == "gpt-4o-mini"
        assert result["usage"]["total_tokens"] == 20
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 2.0
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be kind"},
            {"role": "user", "content": "Hi"},
        ]
        assert "max_tokens" not in kwargs

    def test_empty_message(self, app, openai_client):
        with app.app_context(), pytest.raises(ValueError):
            chat_completion("   ")
        openai_client.chat.completions.create.assert_not_called()

    def test_missing_api_key(self, app, openai_client):
        app.config["OPENAI_API_KEY"] = ""
        with app.app_context(), pytest.raises(LLMConfigurationError):
            chat_completion("Hi")

    @patch("time.sleep")
    def test_transient_error_is_retried(self, _sleep, app, openai_client, make_completion):
        openai_client.chat.completions.create.side_effect = [
            openai.APIConnectionError(request=_REQUEST),
            make_completion("Recovered"),
        ]
        with app.app_context():
            result = chat_completion("Hi")
        assert result["response"] == "Recovered"
        assert openai_client.chat.completions.create.call_count == 2

    @patch("time.sleep")
    def test_retries_exhausted(self, _sleep, app, openai_client):
        openai_client.chat.completions.create.side_effect = _status_error(openai.RateLimitError, 429)
        with app.app_context(), pytest.raises(LLMError) as exc_info:
            chat_completion("Hi")
        assert exc_info.value.status_code == 429
        assert openai_client.chat.completions.create.call_count == 3

    def test_client_error_not_retried(self, app, openai_client):
        openai_client.chat.completions.create.side_effect = _status_error(openai.BadRequestError, 400)
        with app.app_context(), pytest.raises(LLMError) as exc_info:
            chat_completion("Hi")
        assert exc_info.value.status_code == 400
        assert exc_info.value.details == "upstream said no"
        assert openai_client.chat.completions.create.call_count == 1


class TestStreaming:
    def test_yields_sse_lines(self, app, openai_client):
        chunk = type("Chunk", (), {"model_dump_json": lambda self: '{"choices": []}'})()
        openai_client.chat.completions.create.return_value = iter([chunk, chunk])
        with app.app_context():
            events = list(stream_chat_completion("Hi"))
        assert events == ['data: {"choices": []}\n\n'] * 2 + ["data: [DONE]\n\n"]
        assert openai_client.chat.completions.create.call_args.kwargs["stream"] is True
