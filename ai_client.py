"""OpenAI chat client with retry on transient errors.

Every LLM call in the portal goes through chat_completion() or
stream_chat_completion(). Connection failures, timeouts, rate limits and
upstream 5xx responses are retried with exponential backoff; anything else
surfaces at once as an LLMError.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from typing import Any

import openai
from flask import current_app
from openai import OpenAI
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 1.0
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

UPSTREAM_ERROR = "Failed to get response from OpenAI"


class LLMError(Exception):
    """Base class for LLM call failures."""

    status_code = 502

    def __init__(self, message: str, details: str = "", status_code: int | None = None):
        super().__init__(message)
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class LLMConfigurationError(LLMError):
    """The OpenAI API key is not configured."""

    status_code = 500


class TransientLLMError(Exception):
    """Wrapper for transient LLM errors that should be retried."""


_TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def clamp_temperature(value: Any) -> float:
    """Coerce a requested temperature into the range the API accepts."""
    if value is None:
        return DEFAULT_TEMPERATURE
    try:
        temperature = float(value)
    except (TypeError, ValueError):
        return DEFAULT_TEMPERATURE
    return max(MIN_TEMPERATURE, min(MAX_TEMPERATURE, temperature))


def get_client() -> OpenAI:
    api_key = current_app.config.get("OPENAI_API_KEY", "")
    if not api_key:
        raise LLMConfigurationError("OpenAI API key not configured")
    return OpenAI(api_key=api_key)


def build_messages(message: str, system_prompt: str | None = None) -> list[dict]:
    messages: list[dict] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": message})
    return messages


@retry(
    retry=retry_if_exception_type(TransientLLMError),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _create_with_retry(client: OpenAI, **kwargs: Any) -> Any:
    """Call the chat completions endpoint, retrying transient failures."""
    try:
        return client.chat.completions.create(**kwargs)
    except _TRANSIENT_ERRORS as exc:
        logger.warning("Transient OpenAI error, retrying: %s", exc)
        raise TransientLLMError(str(exc)) from exc


def _create(client: OpenAI, **kwargs: Any) -> Any:
    """Run a completion and translate SDK errors into LLMError."""
    try:
        return _create_with_retry(client, **kwargs)
    except TransientLLMError as exc:
        cause = exc.__cause__
        status = getattr(cause, "status_code", None) or 502
        raise LLMError(UPSTREAM_ERROR, details=str(exc), status_code=status) from exc
    except openai.APIStatusError as exc:
        raise LLMError(UPSTREAM_ERROR, details=exc.message, status_code=exc.status_code) from exc
    except openai.OpenAIError as exc:
        raise LLMError(UPSTREAM_ERROR, details=str(exc)) from exc


def _completion_kwargs(message: str, system_prompt: str | None, model: str | None,
                       temperature: Any, max_tokens: int | None) -> dict:
    if not message or not message.strip():
        raise ValueError("Message is required")
    kwargs: dict = {
        "model": model or current_app.config.get("OPENAI_DEFAULT_MODEL", "gpt-4o-mini"),
        "messages": build_messages(message, system_prompt),
        "temperature": clamp_temperature(temperature),
    }
    if max_tokens:
        kwargs["max_tokens"] = int(max_tokens)
    return kwargs


def chat_completion(
    message: str,
    system_prompt: str | None = None,
    model: str | None = None,
    temperature: Any = None,
    max_tokens: int | None = None,
) -> dict:
    """Send one user message and return the assistant reply.

    Returns:
        {"response": str, "model": str, "usage": dict | None}

    Raises:
        ValueError: message is empty.
        LLMConfigurationError: no API key.
        LLMError: upstream failure after retries.
    """
    kwargs = _completion_kwargs(message, system_prompt, model, temperature, max_tokens)
    client = get_client()

    start = time.time()
    completion = _create(client, **kwargs)
    latency_ms = int((time.time() - start) * 1000)

    usage = completion.usage.model_dump() if completion.usage else None
    logger.info("LLM call model=%s latency_ms=%d tokens=%s", completion.model, latency_ms,
                usage.get("total_tokens") if usage else "-")
    return {
        "response": completion.choices[0].message.content or "",
        "model": completion.model,
        "usage": usage,
    }


def stream_chat_completion(
    message: str,
    system_prompt: str | None = None,
    model: str | None = None,
    temperature: Any = None,
    max_tokens: int | None = None,
) -> Iterator[str]:
    """Start a streamed completion and return its server-sent event lines.

    The upstream request is made before this returns, so configuration and
    HTTP errors raise here rather than mid-stream.
    """
    kwargs = _completion_kwargs(message, system_prompt, model, temperature, max_tokens)
    client = get_client()
    stream = _create(client, stream=True, **kwargs)

    def _events() -> Iterator[str]:
        for chunk in stream:
            yield f"data: {chunk.model_dump_json()}\n\n"
        yield "data: [DONE]\n\n"

    return _events()
