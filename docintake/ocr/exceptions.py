class OcrError(Exception):
    """Base exception for OCR provider calls."""


class OcrQuotaExceededError(OcrError):
    """Raised when the provider rejects the call because of rate or quota limits."""


class OcrPermissionDeniedError(OcrError):
    """Raised when credentials are missing, invalid, or lack access."""


class OcrProviderError(OcrError):
    """Raised on network failures or malformed provider responses."""


class OcrTimeoutError(OcrProviderError):
    """Raised when a batch does not complete within the configured timeout."""
