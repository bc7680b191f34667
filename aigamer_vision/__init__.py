"""Vision pipeline: transcribes game screen captures into text."""

from .transcriber import (
    AnthropicTranscriber,
    OllamaTranscriber,
    VisionTranscriber,
    create_transcriber,
    is_transcription_error,
)

__all__ = [
    "AnthropicTranscriber",
    "OllamaTranscriber",
    "VisionTranscriber",
    "create_transcriber",
    "is_transcription_error",
]
