"""Configuration structures shared by every layer of the player.

Values originate from `config.yaml` (preferred) or environment overrides. The
provider block uses the `AI.<Provider>.*` key paths of the older
appsettings layout, so both `ApiKey` and `api_key` spellings are accepted there.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

SUPPORTED_PROVIDERS = ("Anthropic", "Ollama")
KNOWN_PROVIDERS = ("Anthropic", "Ollama", "OpenAI", "Gemini")

DELAY_FLOOR_MS = 500
DELAY_CEILING_MS = 30000


@dataclass(slots=True)
class ProviderSettings:
    """Endpoint, model names and credentials for one AI provider."""

    api_key: str = ""
    api_endpoint: str = ""
    model: str = ""
    vision_model: str = ""


def _anthropic_defaults() -> ProviderSettings:
    return ProviderSettings(
        api_endpoint="https://api.anthropic.com/v1/messages",
        model="claude-haiku-4-5",
        vision_model="claude-haiku-4-5",
    )


def _ollama_defaults() -> ProviderSettings:
    return ProviderSettings(
        api_endpoint="http://localhost:11434",
        model="llama3",
        vision_model="llava",
    )


def _openai_defaults() -> ProviderSettings:
    return ProviderSettings(
        api_endpoint="https://api.openai.com/v1/chat/completions",
        model="gpt-4o",
        vision_model="gpt-4o",
    )


def _gemini_defaults() -> ProviderSettings:
    return ProviderSettings(
        api_endpoint="https://generativelanguage.googleapis.com/v1beta/models",
        model="gemini-pro",
        vision_model="gemini-pro-vision",
    )


@dataclass(slots=True)
class AISettings:
    """Provider selection plus per-provider settings."""

    provider: str = "Ollama"
    anthropic: ProviderSettings = field(default_factory=_anthropic_defaults)
    ollama: ProviderSettings = field(default_factory=_ollama_defaults)
    openai: ProviderSettings = field(default_factory=_openai_defaults)
    gemini: ProviderSettings = field(default_factory=_gemini_defaults)

    def for_provider(self, name: Optional[str] = None) -> ProviderSettings:
        """Return the settings block for `name` (default: the selected provider)."""
        key = (name or self.provider).strip().lower()
        if key not in ("anthropic", "ollama", "openai", "gemini"):
            raise KeyError(f"Unknown AI provider '{name or self.provider}'")
        return getattr(self, key)


@dataclass(slots=True)
class WindowConfig:
    """Window discovery parameters."""

    process_name: str = "Warsim"
    title_keywords: List[str] = field(default_factory=lambda: ["Warsim", "Aslona"])
    terminal_title: str = "Windows Terminal"


@dataclass(slots=True)
class CaptureValidationConfig:
    """Thresholds used to reject blank captures (0 disables a check)."""

    min_mean_luminance: float = 0.0
    min_luminance_stddev: float = 1.0


@dataclass(slots=True)
class RetentionConfig:
    """Capture file retention policy."""

    max_captures: int = 50


@dataclass(slots=True)
class CaptureConfig:
    """Screen capture and image preparation settings."""

    output_dir: Path = Path("captures")
    save_captures: bool = False
    max_dimension: int = 1600
    validation: CaptureValidationConfig = field(default_factory=CaptureValidationConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)


@dataclass(slots=True)
class LoopConfig:
    """Pacing and retry knobs for the game loop."""

    default_delay_ms: int = 2000
    min_delay_ms: int = 500
    max_delay_ms: int = 30000
    delay_step_ms: int = 1000
    max_retries: int = 3
    retry_pause_s: float = 1.0
    error_backoff_s: float = 2.0
    focus_settle_s: float = 0.5
    pause_poll_s: float = 0.5
    poll_interval_s: float = 0.1

    def __post_init__(self) -> None:
        _check_delay_bounds(self)


@dataclass(slots=True)
class InputConfig:
    """Timing for synthesized key events."""

    key_down_ms: int = 30
    settle_ms: int = 50


@dataclass(slots=True)
class AgentConfig:
    """Decision/vision request parameters and output locations."""

    max_history_messages: int = 20
    temperature: float = 0.7
    max_tokens: int = 150
    vision_max_tokens: int = 1000
    request_timeout_s: float = 60.0
    logs_dir: Path = Path("logs")


@dataclass(slots=True)
class AppConfig:
    """Everything loaded from `config.yaml`."""

    ai: AISettings = field(default_factory=AISettings)
    window: WindowConfig = field(default_factory=WindowConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    input: InputConfig = field(default_factory=InputConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)


_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def load_configs(path: Optional[Path] = None) -> AppConfig:
    """Load the application configuration from YAML, falling back to defaults."""

    cfg_path = path or Path("config.yaml")
    config = AppConfig()

    raw: Dict[str, Any] = {}
    if cfg_path.exists():
        with cfg_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}

    _apply_ai_settings(config.ai, _section(raw, "AI", "ai"))
    _apply_window_config(config.window, raw.get("window", {}))
    _apply_capture_config(config.capture, raw.get("capture", {}))
    _apply_loop_config(config.loop, raw.get("loop", {}))
    _apply_input_config(config.input, raw.get("input", {}))
    _apply_agent_config(config.agent, raw.get("agent", {}))
    _apply_env_overrides(config.ai)

    return config


def _section(data: Dict, *names: str) -> Dict:
    for name in names:
        value = data.get(name)
        if isinstance(value, dict):
            return value
    return {}


def _lookup(data: Dict, *names: str) -> Any:
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return None


def _apply_ai_settings(settings: AISettings, data: Dict) -> None:
    if not data:
        return

    provider = _lookup(data, "Provider", "provider")
    if provider:
        settings.provider = str(provider)

    for name in KNOWN_PROVIDERS:
        block = _section(data, name, name.lower())
        if block:
            _apply_provider_settings(settings.for_provider(name), block)


def _apply_provider_settings(settings: ProviderSettings, data: Dict) -> None:
    api_key = _lookup(data, "ApiKey", "api_key")
    if api_key is not None:
        settings.api_key = str(api_key)

    endpoint = _lookup(data, "ApiEndpoint", "api_endpoint")
    if endpoint:
        settings.api_endpoint = str(endpoint)

    model = _lookup(data, "Model", "model")
    if model:
        settings.model = str(model)

    vision_model = _lookup(data, "VisionModel", "vision_model")
    if vision_model:
        settings.vision_model = str(vision_model)


def _apply_env_overrides(settings: AISettings) -> None:
    for key, env_name in _API_KEY_ENV.items():
        provider_settings = getattr(settings, key)
        if not provider_settings.api_key:
            provider_settings.api_key = os.environ.get(env_name, "")


def _apply_window_config(config: WindowConfig, data: Dict) -> None:
    if not data:
        return

    process_name = data.get("process_name")
    if process_name:
        config.process_name = str(process_name)

    keywords = data.get("title_keywords")
    if isinstance(keywords, str):
        config.title_keywords = [keywords]
    elif isinstance(keywords, (list, tuple)) and keywords:
        config.title_keywords = [str(k) for k in keywords]

    terminal_title = data.get("terminal_title")
    if terminal_title:
        config.terminal_title = str(terminal_title)


def _apply_capture_config(config: CaptureConfig, data: Dict) -> None:
    if not data:
        return

    output_dir = data.get("output_dir")
    if output_dir:
        config.output_dir = Path(str(output_dir))

    if "save_captures" in data:
        config.save_captures = bool(data["save_captures"])

    if "max_dimension" in data:
        config.max_dimension = int(data["max_dimension"])

    validation_data = data.get("validation") or {}
    if validation_data:
        if "min_mean_luminance" in validation_data:
            config.validation.min_mean_luminance = float(validation_data["min_mean_luminance"])
        if "min_luminance_stddev" in validation_data:
            config.validation.min_luminance_stddev = float(validation_data["min_luminance_stddev"])

    retention_data = data.get("retention") or {}
    if retention_data and "max_captures" in retention_data:
        config.retention.max_captures = int(retention_data["max_captures"])


def _apply_loop_config(config: LoopConfig, data: Dict) -> None:
    if not data:
        return

    for name in ("default_delay_ms", "min_delay_ms", "max_delay_ms", "delay_step_ms", "max_retries"):
        if name in data:
            setattr(config, name, int(data[name]))

    for name in ("retry_pause_s", "error_backoff_s", "focus_settle_s", "pause_poll_s", "poll_interval_s"):
        if name in data:
            setattr(config, name, float(data[name]))

    _check_delay_bounds(config)


def _check_delay_bounds(config: LoopConfig) -> None:
    """Keep the delay range inside [DELAY_FLOOR_MS, DELAY_CEILING_MS] and the default within it."""
    for name in ("min_delay_ms", "max_delay_ms"):
        value = getattr(config, name)
        if not DELAY_FLOOR_MS <= value <= DELAY_CEILING_MS:
            raise ValueError(
                f"{name} ({value}) must be between {DELAY_FLOOR_MS} and {DELAY_CEILING_MS} ms"
            )
    if config.min_delay_ms > config.max_delay_ms:
        raise ValueError(
            f"min_delay_ms ({config.min_delay_ms}) must not exceed max_delay_ms ({config.max_delay_ms})"
        )
    config.default_delay_ms = max(config.min_delay_ms, min(config.max_delay_ms, config.default_delay_ms))


def _apply_input_config(config: InputConfig, data: Dict) -> None:
    if not data:
        return

    if "key_down_ms" in data:
        config.key_down_ms = int(data["key_down_ms"])

    if "settle_ms" in data:
        config.settle_ms = int(data["settle_ms"])


def _apply_agent_config(config: AgentConfig, data: Dict) -> None:
    if not data:
        return

    if "max_history_messages" in data:
        config.max_history_messages = int(data["max_history_messages"])

    if "temperature" in data:
        config.temperature = float(data["temperature"])

    if "max_tokens" in data:
        config.max_tokens = int(data["max_tokens"])

    if "vision_max_tokens" in data:
        config.vision_max_tokens = int(data["vision_max_tokens"])

    if "request_timeout_s" in data:
        config.request_timeout_s = float(data["request_timeout_s"])

    if "logs_dir" in data:
        config.logs_dir = Path(str(data["logs_dir"]))


__all__ = [
    "AgentConfig",
    "AISettings",
    "AppConfig",
    "CaptureConfig",
    "CaptureValidationConfig",
    "DELAY_CEILING_MS",
    "DELAY_FLOOR_MS",
    "InputConfig",
    "KNOWN_PROVIDERS",
    "LoopConfig",
    "ProviderSettings",
    "RetentionConfig",
    "SUPPORTED_PROVIDERS",
    "WindowConfig",
    "load_configs",
]
