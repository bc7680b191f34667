"""Per-provider response decoders.

Each decoder turns one raw provider response into a `ProviderReply`. A reply
carries either text or an error message, never raises on malformed payloads,
and keeps a short excerpt of the payload in the error for the logs.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

_EXCERPT_CHARS = 200


@dataclass(slots=True)
class ProviderReply:
    """Normalized provider response."""

    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_anthropic_message(message: Any) -> ProviderReply:
    """Extract the first text block of an Anthropic `Message`."""
    content = getattr(message, "content", None)
    if not content:
        return ProviderReply(error="Anthropic response contained no content blocks")

    for block in content:
        if getattr(block, "type", None) == "text":
            return ProviderReply(text=block.text or "")

    return ProviderReply(error="Anthropic response contained no text block")


def decode_ollama_chat(body: str) -> ProviderReply:
    """Decode an Ollama `/api/chat` body.

    The body is normally one JSON object. When the server streams anyway the
    body is newline-delimited JSON; the fragments' `message.content` values
    are concatenated in order.
    """
    if not body or not body.strip():
        return ProviderReply(error="Ollama returned an empty body")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return _decode_ollama_stream(body)

    if not isinstance(payload, dict):
        return ProviderReply(error=f"Unexpected Ollama payload: {_excerpt(body)}")

    if payload.get("error"):
        return ProviderReply(error=f"Ollama error: {payload['error']}")

    message = payload.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return ProviderReply(text=message["content"])

    # /api/generate style payloads
    if isinstance(payload.get("response"), str):
        return ProviderReply(text=payload["response"])

    return ProviderReply(error=f"Ollama response had no message content: {_excerpt(body)}")


def _decode_ollama_stream(body: str) -> ProviderReply:
    parts = []
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            fragment = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(fragment, dict):
            continue
        message = fragment.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            parts.append(message["content"])
        elif isinstance(fragment.get("response"), str):
            parts.append(fragment["response"])

    if not parts:
        return ProviderReply(error=f"Could not parse Ollama response: {_excerpt(body)}")
    return ProviderReply(text="".join(parts))


def _excerpt(body: str) -> str:
    body = body.strip()
    if len(body) <= _EXCERPT_CHARS:
        return body
    return body[:_EXCERPT_CHARS] + "..."


__all__ = [
    "ProviderReply",
    "decode_anthropic_message",
    "decode_ollama_chat",
]
