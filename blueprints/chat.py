"""LLM proxy: forwards a chat prompt to OpenAI, keeping the API key server-side."""

from __future__ import annotations

import logging

from flask import Blueprint, Response, jsonify, stream_with_context
from flask_login import login_required

from ai_client import LLMConfigurationError, LLMError, chat_completion, stream_chat_completion
from extensions import limiter
from helpers import json_body

logger = logging.getLogger(__name__)

bp = Blueprint("chat", __name__)


@bp.route("/api/chatgpt", methods=["POST"])
@login_required
@limiter.limit("30 per minute")
def chatgpt():
    data = json_body()
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        return jsonify({"error": "Message is required and must be a non-empty string"}), 400

    max_tokens = data.get("max_tokens")
    if max_tokens is not None and (not isinstance(max_tokens, int) or max_tokens <= 0):
        return jsonify({"error": "max_tokens must be a positive integer"}), 400

    kwargs = {
        "system_prompt": data.get("systemPrompt") or None,
        "model": data.get("model") or None,
        "temperature": data.get("temperature"),
        "max_tokens": max_tokens,
    }

    try:
        if data.get("stream"):
            events = stream_chat_completion(message, **kwargs)
            return Response(
                stream_with_context(events),
                mimetype="text/event-stream",
                headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
            )
        result = chat_completion(message, **kwargs)
    except LLMConfigurationError:
        logger.error("Chat proxy called without OPENAI_API_KEY")
        return jsonify({"error": "OpenAI API key not configured"}), 500
    except LLMError as e:
        logger.error("OpenAI request failed (%s): %s", e.status_code, e.details)
        return jsonify({"error": str(e), "details": e.details}), e.status_code

    return jsonify({"success": True, **result})
