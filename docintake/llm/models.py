from dataclasses import dataclass


@dataclass(frozen=True)
class ModelConfig:
    """Per-call generation settings."""

    temperature: float = 0.1
    max_tokens: int = 1000
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class PdfAttachment:
    """A PDF sent alongside the prompt to multimodal models."""

    filename: str
    data: bytes
