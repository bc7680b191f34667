"""Vision-model transcription of game screen captures.

A transcriber sends one image to a vision-capable model and returns the text
it reads. Failures never raise: the result is a string starting with
``ERROR:`` so the game loop can log it and skip the cycle.
"""
from __future__ import annotations

import base64
import logging
from io import BytesIO
from typing import Any, Optional

import requests
from anthropic import Anthropic
from PIL import Image

from aigamer_agent.decoders import ProviderReply, decode_anthropic_message, decode_ollama_chat
from aigamer_agent.prompts import DEFAULT_VISION_PROMPT
from aigamer_agent.providers import ProviderNotConfiguredError, anthropic_base_url, ollama_base_url
from aigamer_os.config import AgentConfig, AISettings, CaptureConfig, ProviderSettings

Logger = logging.Logger

ERROR_PREFIX = "ERROR"
DEFAULT_MAX_DIMENSION = 1600


def is_transcription_error(text: str) -> bool:
    """Return True when `text` is a failure marker rather than game text."""
    return text.lstrip().startswith(f"{ERROR_PREFIX}:")


def downscale(image: Image.Image, max_dimension: int = DEFAULT_MAX_DIMENSION) -> Image.Image:
    """Shrink `image` so its longer side is at most `max_dimension` pixels.

    Aspect ratio is preserved; images already within bounds are returned as-is.
    """
    width, height = image.size
    if max_dimension <= 0 or (width <= max_dimension and height <= max_dimension):
        return image

    if width >= height:
        new_size = (max_dimension, max(1, int(height * max_dimension / width)))
    else:
        new_size = (max(1, int(width * max_dimension / height)), max_dimension)
    return image.resize(new_size, Image.Resampling.LANCZOS)


def encode_png_base64(image: Image.Image) -> str:
    with BytesIO() as buffer:
        image.save(buffer, format="PNG")
        return base64.b64encode(buffer.getvalue()).decode("utf-8")


class VisionTranscriber:
    """Base transcriber: prepares the image and converts failures to ERROR strings."""

    provider_name = "base"

    def __init__(
        self,
        settings: ProviderSettings,
        agent_config: AgentConfig,
        max_dimension: int = DEFAULT_MAX_DIMENSION,
        logger: Optional[Logger] = None,
    ) -> None:
        self._settings = settings
        self._agent_config = agent_config
        self._max_dimension = max_dimension
        self._logger = logger or logging.getLogger(__name__)

    @property
    def model(self) -> str:
        return self._settings.vision_model

    def transcribe(self, image: Image.Image, prompt: Optional[str] = None) -> str:
        """Return the text visible in `image`, or an ``ERROR: ...`` message."""
        prompt = prompt or DEFAULT_VISION_PROMPT
        try:
            prepared = downscale(image.convert("RGB"), self._max_dimension)
            if prepared.size != image.size:
                self._logger.debug("Downscaled capture from %s to %s", image.size, prepared.size)
            reply = self._request(encode_png_base64(prepared), prompt)
        except Exception as exc:
            self._logger.error("%s vision request failed: %s", self.provider_name, exc)
            return f"{ERROR_PREFIX}: {exc}"

        if not reply.ok:
            self._logger.error("%s vision request failed: %s", self.provider_name, reply.error)
            return f"{ERROR_PREFIX}: {reply.error}"

        self._logger.debug("Transcribed %d characters", len(reply.text))
        return reply.text

    def _request(self, image_b64: str, prompt: str) -> ProviderReply:  # pragma: no cover - abstract
        raise NotImplementedError


class AnthropicTranscriber(VisionTranscriber):
    """Transcriber using an Anthropic vision model."""

    provider_name = "Anthropic"

    def __init__(
        self,
        settings: ProviderSettings,
        agent_config: AgentConfig,
        max_dimension: int = DEFAULT_MAX_DIMENSION,
        client: Optional[Any] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(settings, agent_config, max_dimension, logger)
        self._client = client or Anthropic(
            api_key=settings.api_key,
            base_url=anthropic_base_url(settings.api_endpoint),
            timeout=agent_config.request_timeout_s,
        )

    def _request(self, image_b64: str, prompt: str) -> ProviderReply:
        message = self._client.messages.create(
            model=self._settings.vision_model,
            max_tokens=self._agent_config.vision_max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/png",
                                "data": image_b64,
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        )
        return decode_anthropic_message(message)


class OllamaTranscriber(VisionTranscriber):
    """Transcriber using a local Ollama vision model (e.g. llava)."""

    provider_name = "Ollama"

    def __init__(
        self,
        settings: ProviderSettings,
        agent_config: AgentConfig,
        max_dimension: int = DEFAULT_MAX_DIMENSION,
        session: Optional[Any] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(settings, agent_config, max_dimension, logger)
        self._http = session or requests
        self._url = f"{ollama_base_url(settings.api_endpoint)}/api/chat"

    def _request(self, image_b64: str, prompt: str) -> ProviderReply:
        payload = {
            "model": self._settings.vision_model,
            "messages": [{"role": "user", "content": prompt, "images": [image_b64]}],
            "stream": False,
            "options": {"num_predict": self._agent_config.vision_max_tokens},
        }
        response = self._http.post(self._url, json=payload, timeout=self._agent_config.request_timeout_s)
        if response.status_code != 200:
            return ProviderReply(error=f"HTTP {response.status_code}: {response.text[:200]}")
        return decode_ollama_chat(response.text)


def create_transcriber(
    ai_settings: AISettings,
    agent_config: AgentConfig,
    capture_config: Optional[CaptureConfig] = None,
    logger: Optional[Logger] = None,
) -> VisionTranscriber:
    """Build the transcriber for the configured provider."""
    max_dimension = capture_config.max_dimension if capture_config else DEFAULT_MAX_DIMENSION
    provider = (ai_settings.provider or "").strip().lower()

    if provider == "anthropic":
        settings = ai_settings.anthropic
        if not settings.api_key:
            raise ProviderNotConfiguredError(
                "Anthropic API key is not configured (AI.Anthropic.ApiKey or ANTHROPIC_API_KEY)"
            )
        return AnthropicTranscriber(settings, agent_config, max_dimension, logger=logger)

    if provider == "ollama":
        return OllamaTranscriber(ai_settings.ollama, agent_config, max_dimension, logger=logger)

    raise ProviderNotConfiguredError(f"AI provider '{ai_settings.provider}' has no vision transcriber")


__all__ = [
    "AnthropicTranscriber",
    "ERROR_PREFIX",
    "OllamaTranscriber",
    "VisionTranscriber",
    "create_transcriber",
    "downscale",
    "encode_png_base64",
    "is_transcription_error",
]
