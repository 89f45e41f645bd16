class LlmError(Exception):
    """Base exception for language-model calls."""


class LlmTimeoutError(LlmError):
    """Raised when the provider does not answer within the configured timeout."""


class LlmProviderError(LlmError):
    """Raised when the provider call fails due to network/infrastructure issues."""


class LlmEmptyResponseError(LlmError):
    """Raised when the provider answers without usable content."""


class LlmConfigurationError(LlmError):
    """Raised when provider credentials or model settings are missing."""


class LlmResponseFormatError(LlmError):
    """Raised when the provider content is not the expected JSON object."""
