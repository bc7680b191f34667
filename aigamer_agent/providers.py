"""Decision clients: turn a game-state transcription into the model's reply."""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from anthropic import Anthropic

from aigamer_os.config import SUPPORTED_PROVIDERS, AgentConfig, AISettings, ProviderSettings

from .decoders import ProviderReply, decode_anthropic_message, decode_ollama_chat
from .history import ConversationHistory, TrimPolicy
from .prompts import GAME_SYSTEM_PROMPT, format_game_state

Logger = logging.Logger

DECISION_ERROR = "ERROR"


class ProviderNotConfiguredError(RuntimeError):
    """Raised when the selected provider is unsupported or missing credentials."""


class DecisionClient:
    """Base class holding the conversation and the decide() flow.

    Subclasses implement `_submit()` which sends the current history and
    returns a `ProviderReply`.
    """

    provider_name = "base"

    def __init__(
        self,
        settings: ProviderSettings,
        agent_config: AgentConfig,
        history: ConversationHistory,
        logger: Optional[Logger] = None,
    ) -> None:
        self._settings = settings
        self._agent_config = agent_config
        self._history = history
        self._logger = logger or logging.getLogger(__name__)

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def model(self) -> str:
        return self._settings.model

    def decide(self, game_state: str) -> str:
        """Ask the model for the next move.

        Args:
            game_state: Transcribed game screen.

        Returns:
            The model's raw reply, or "ERROR" when the request failed. A failed
            request leaves the history as it was before the call.
        """
        self._history.append_user(format_game_state(game_state))
        self._logger.debug(
            "Requesting decision from %s model %s (history: %d messages)",
            self.provider_name,
            self.model,
            len(self._history),
        )

        try:
            reply = self._submit()
        except Exception as exc:
            self._logger.error("%s decision request failed: %s", self.provider_name, exc)
            self._history.discard_pending_user()
            return DECISION_ERROR

        if not reply.ok:
            self._logger.error("%s decision request failed: %s", self.provider_name, reply.error)
            self._history.discard_pending_user()
            return DECISION_ERROR

        if not reply.text.strip():
            self._logger.warning("%s returned an empty reply", self.provider_name)
            self._history.discard_pending_user()
            return DECISION_ERROR

        self._history.append_assistant(reply.text)
        return reply.text

    def _submit(self) -> ProviderReply:  # pragma: no cover - abstract
        raise NotImplementedError


class AnthropicDecisionClient(DecisionClient):
    """Decision client backed by the Anthropic Messages API."""

    provider_name = "Anthropic"

    def __init__(
        self,
        settings: ProviderSettings,
        agent_config: AgentConfig,
        client: Optional[Any] = None,
        system_prompt: str = GAME_SYSTEM_PROMPT,
        logger: Optional[Logger] = None,
    ) -> None:
        history = ConversationHistory(
            max_messages=agent_config.max_history_messages,
            policy=TrimPolicy.EVICT,
            system_prompt=system_prompt,
            logger=logger,
        )
        super().__init__(settings, agent_config, history, logger)
        self._client = client or Anthropic(
            api_key=settings.api_key,
            base_url=anthropic_base_url(settings.api_endpoint),
            timeout=agent_config.request_timeout_s,
        )
        self._logger.info("Initialized Anthropic decision client with model: %s", settings.model)

    def _submit(self) -> ProviderReply:
        message = self._client.messages.create(
            model=self._settings.model,
            system=self._history.system_prompt or "",
            messages=self._history.as_payload(),
            max_tokens=self._agent_config.max_tokens,
            temperature=self._agent_config.temperature,
        )
        return decode_anthropic_message(message)


class OllamaDecisionClient(DecisionClient):
    """Decision client backed by a local Ollama server (`/api/chat`)."""

    provider_name = "Ollama"

    def __init__(
        self,
        settings: ProviderSettings,
        agent_config: AgentConfig,
        session: Optional[Any] = None,
        system_prompt: str = GAME_SYSTEM_PROMPT,
        logger: Optional[Logger] = None,
    ) -> None:
        history = ConversationHistory(
            max_messages=agent_config.max_history_messages,
            policy=TrimPolicy.SUMMARIZE,
            system_prompt=system_prompt,
            logger=logger,
        )
        super().__init__(settings, agent_config, history, logger)
        self._http = session or requests
        self._url = f"{ollama_base_url(settings.api_endpoint)}/api/chat"
        self._logger.info("Initialized Ollama decision client with model %s at %s", settings.model, self._url)

    def _submit(self) -> ProviderReply:
        payload = {
            "model": self._settings.model,
            "messages": self._history.as_payload(include_system=True),
            "stream": False,
            "options": {
                "temperature": self._agent_config.temperature,
                "num_predict": self._agent_config.max_tokens,
            },
        }
        response = self._http.post(self._url, json=payload, timeout=self._agent_config.request_timeout_s)
        if response.status_code != 200:
            return ProviderReply(error=f"HTTP {response.status_code}: {response.text[:200]}")
        return decode_ollama_chat(response.text)


def anthropic_base_url(endpoint: str) -> Optional[str]:
    """Map a Messages endpoint URL to the SDK's base URL (None keeps the SDK default)."""
    endpoint = (endpoint or "").strip().rstrip("/")
    if not endpoint:
        return None
    for suffix in ("/v1/messages", "/v1"):
        if endpoint.endswith(suffix):
            endpoint = endpoint[: -len(suffix)]
            break
    return endpoint or None


def ollama_base_url(endpoint: str) -> str:
    """Strip API paths so both `http://host:11434` and `.../api/generate` work."""
    endpoint = (endpoint or "http://localhost:11434").strip().rstrip("/")
    for suffix in ("/api/generate", "/api/chat"):
        if endpoint.endswith(suffix):
            endpoint = endpoint[: -len(suffix)]
            break
    return endpoint.rstrip("/")


def create_decision_client(
    ai_settings: AISettings,
    agent_config: AgentConfig,
    logger: Optional[Logger] = None,
) -> DecisionClient:
    """Build the decision client for the configured provider.

    Raises:
        ProviderNotConfiguredError: Unknown or unsupported provider, or an
            Anthropic selection without an API key.
    """
    provider = (ai_settings.provider or "").strip().lower()

    if provider == "anthropic":
        settings = ai_settings.anthropic
        if not settings.api_key:
            raise ProviderNotConfiguredError(
                "Anthropic API key is not configured (AI.Anthropic.ApiKey or ANTHROPIC_API_KEY)"
            )
        return AnthropicDecisionClient(settings, agent_config, logger=logger)

    if provider == "ollama":
        return OllamaDecisionClient(ai_settings.ollama, agent_config, logger=logger)

    raise ProviderNotConfiguredError(
        f"AI provider '{ai_settings.provider}' is not supported (choose one of {', '.join(SUPPORTED_PROVIDERS)})"
    )


__all__ = [
    "AnthropicDecisionClient",
    "DECISION_ERROR",
    "DecisionClient",
    "OllamaDecisionClient",
    "ProviderNotConfiguredError",
    "anthropic_base_url",
    "create_decision_client",
    "ollama_base_url",
]
